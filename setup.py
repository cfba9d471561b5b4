from setuptools import setup, find_namespace_packages

setup(
    name="mlcompat",
    version="0.1.0",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    package_data={"mlcompat": ["DATA/*.json"]},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "pydantic-settings>=2.1",
        "packaging>=22.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "hypothesis>=6.91",
        ],
    },
    entry_points={
        "console_scripts": [
            "mlcompat=mlcompat.CLI.main:main",
        ],
    },
)
