"""Setup configuration for the group join-request inspector."""

from setuptools import setup, find_packages

setup(
    name="group-inspector",
    version="0.1.0",
    description="Automated moderation of group join requests with manual review escalation",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "PyYAML>=6.0",
        "jsonschema>=4.0",
        "prompt_toolkit>=3.0",
        "aiosqlite>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
