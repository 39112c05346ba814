from setuptools import setup, find_packages

setup(
    name="simforge",
    version="0.1.0",
    description="simforge - Multi-agent simulation configuration builder",
    author="Your Name",
    packages=find_packages(include=["simforge", "simforge.*"]),
    include_package_data=True,
    install_requires=[
        # Core data modeling and validation
        "pydantic>=2.0.0",

        # Environment variables
        "python-dotenv>=1.0.0",

        # CLI and rich output
        "typer>=0.9.0",
        "rich>=13.0.0",

        # YAML emission for runner configurations
        "pyyaml>=6.0.0",

        # Jinja2 for prompt reference checking
        "jinja2>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "simforge = simforge.app.cli:main",
        ],
    },
    python_requires=">=3.11",
    package_dir={"": "."},
)
