from setuptools import setup, find_packages

setup(
    name="forge-e2e",
    version="0.1.0",
    description="Local Foundry deployment runner with broadcast artifact extraction",
    packages=find_packages(include=["forge_e2e", "forge_e2e.*"]),
    package_data={
        "forge_e2e": ["configs/schemas/*.json"],
    },
    install_requires=[
        "web3>=6.0.0",
        "eth-account>=0.8.0",
        "eth-utils>=2.0.0",
        "requests>=2.28.0",
        "jsonschema>=4.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "forge-e2e=forge_e2e.main:main",
        ],
    },
)
