from setuptools import setup, find_packages

setup(
    name="lunie-core",
    version="0.1.0",
    packages=find_packages(include=[
        "lunie",
        "lunie.*",
        "cache",
        "config",
        "error_handling",
        "monitoring",
    ]),
    install_requires=[
        "pydantic>=2.6",
        "pydantic-settings",
        "structlog",
        "redis>=5",
        "prometheus-client",
        "bech32"
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.9",
)
