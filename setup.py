from setuptools import find_packages, setup


def get_version():
    with open("tpudoc/__init__.py") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().replace('"', "").replace("'", "")
    raise RuntimeError("No version found!")


setup(
    name="tpu-doc",
    version=get_version(),
    description="tpu-doc: pre-deployment validation of Cloud TPU VMs (hardware, stack, I/O, security, config)",
    author="AMD AIG AI Brain-TAS Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "loguru",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    package_data={
        "tpudoc": [
            "data/*.yaml",
        ]
    },
    entry_points={
        "console_scripts": [
            "tpu-doc=tpudoc.cli.main:main",
        ]
    },
    python_requires=">=3.9",
    include_package_data=True,
    zip_safe=False,
)
