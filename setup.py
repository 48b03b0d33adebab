from setuptools import setup, find_packages

setup(
    name="shelly_comm",
    version="0.1.0",
    description="Shelly Gen2+ JSON-RPC client, transports and typed component accessors",
    author="shelly_comm Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "httpx>=0.25.0",
        "websockets>=12.0",
        "aiomqtt>=2.0.0",
        "pydantic>=2.0.0",
        "opentelemetry-api>=1.14.0",
        "opentelemetry-sdk>=1.14.0",
        "opentelemetry-exporter-otlp>=1.14.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
    },
    python_requires=">=3.9",
)
