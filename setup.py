from setuptools import find_packages, setup

package_files = [
    "sql/*.sql",
]

setup(
    name="bg-precheck",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"bg_precheck": package_files},
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy>=2.0.0",
        "pydantic>=2.0.0",
        "psycopg2-binary>=2.9.9",  # Sync driver used through SQLAlchemy, also parses connection strings
        "boto3>=1.28.0",  # Secrets Manager / SSM credential lookup
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bg-precheck=bg_precheck.cli:main",
        ],
    },
    description="Blue/Green deployment readiness checks for RDS/Aurora PostgreSQL clusters",
    author="Database Platform Team",
)
