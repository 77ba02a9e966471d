from setuptools import setup, find_packages

setup(
    name="bloger",
    version="0.1.0",
    description="Bloger - AI Article Workshop",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "openai>=1.66.0",
        "backoff>=1.11.0",
        "async-timeout>=4.0.0",
        "mistune>=2.0.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bloger=bloger.cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
