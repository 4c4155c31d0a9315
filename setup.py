from setuptools import setup, find_packages

setup(
    name="reprompt-trace-engine",
    version="3.2.0",
    description="Scores how well generated specifications trace back to the user's input",
    author="Sumit Asthana",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"config": ["*.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "structlog>=23.0",
        "httpx>=0.25",
        "anthropic>=0.25",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
