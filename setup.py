import os

from setuptools import find_packages, setup

README = os.path.join(os.path.dirname(__file__), "README.md")


def readme() -> str:
    with open(README, encoding="utf-8") as f:
        return f.read()


setup(
    name="model_schema_to_code",
    version="1.0.0",
    description="Resolve declarative data models and generate PostgreSQL DDL, Go and TypeScript code",
    long_description=readme(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Code Generators",
        "Topic :: Database",
        "Intended Audience :: Developers",
    ],
    keywords="data model schema code generation postgresql ddl go typescript template",
    license="MIT",
    packages=find_packages(),
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0.0",
        "jinja2>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "model_schema_to_code=model_schema_to_code.model_schema_to_code:model_schema_to_code",
        ],
    },
    include_package_data=True,
    package_data={
        "model_schema_to_code": ["templates/**/*.jinja2", "tests/test_data/**/*.json"],
    },
    zip_safe=False,
)
