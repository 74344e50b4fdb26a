from setuptools import setup

setup(
    name="conv2d_im2col",
    packages=["conv_module", "conv_module.cpu", "conv_module.cuda"],
    py_modules=["conv_methods"],
    version="0.1",
    python_requires=">=3.10",
    install_requires=["torch", "numpy"],
    extras_require={
        "scripts": ["questionary", "tqdm"],
        "test": ["pytest"],
    },
)
