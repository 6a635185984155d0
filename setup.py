from setuptools import setup, find_packages

setup(
    name="tastematch",
    version="0.1",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pandas>=2.0",
        "pyarrow",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "pyyaml",
        "python-dotenv",
        "loguru",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
