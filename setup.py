from setuptools import setup, find_packages

setup(
    name="mobileqa_agent",
    version="0.0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "pydantic>=2.5",
        "openai",
        "httpx",
        "python-dotenv",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "mobileqa-agent=mobileqa_agent.cli:main",
            "mobileqa-condense=mobileqa_agent.cli:condense_main",
        ],
    },
    python_requires='>=3.10',
)
