"""
Statement Categorizer - Setup Configuration
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="statement-categorizer",
    version="1.0.0",
    description="Deterministic categorization of Brazilian bank statement transactions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "psycopg2-binary>=2.9.9",
        "anthropic>=0.39.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-cov>=4.1.0",
            "black>=23.12.1",
            "flake8>=7.0.0",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "statement-classify=statement_categorizer.cli.classify_csv:main",
            "statement-correct=statement_categorizer.cli.apply_correction:main",
            "statement-init-db=statement_categorizer.cli.init_db:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Topic :: Office/Business :: Financial",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    include_package_data=True,
    package_data={
        "statement_categorizer": [
            "data/*.json",
            "db/*.sql",
        ],
    },
)
