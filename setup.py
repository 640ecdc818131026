import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open('requirements.txt') as f:
    required = f.read().splitlines()

setuptools.setup(
    name="lbmflow",
    version="0.1.0",
    description="A 3D D3Q27 lattice Boltzmann solver publishing lock-free frame snapshots.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=required,
    extras_require={"test": ["pytest"]},
    packages=setuptools.find_namespace_packages(include = ["lbmflow", "lbmflow.*"]),
    python_requires=">=3.9",
)
