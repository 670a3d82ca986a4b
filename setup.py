from setuptools import setup, find_packages

setup(
    name="deltasim",
    version="0.1.0",
    description="Delta-cycle discrete event simulation kernel for digital logic models",
    author="adamfilli",
    packages=find_packages(include=["deltasim", "deltasim.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
