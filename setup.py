from setuptools import setup, find_packages


setup(
    name="ustar",
    version="0.1",
    packages=find_packages(include=["ustar", "ustar.*"]),
    description="A codec for the USTAR tape-archive format: encode named text/binary items, decode them back.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ustar=ustar.cli:main",
        ]
    },
)
