from setuptools import setup, find_packages

setup(
    name="climate_solutions",
    version="1.0.0",
    description="Climate solutions project catalog Flask application",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    py_modules=["run"],
    include_package_data=True,
    package_data={
        "climate_solutions": ["templates/*.html", "data/*.json"],
    },
    install_requires=[
        "Flask>=3.0,<4",
        "psycopg[binary,pool]>=3.2,<4",
        "pymongo>=4.6,<5",
        "bcrypt>=4.1,<6",
    ],
    extras_require={
        "test": [
            "pytest>=8,<9",
            "beautifulsoup4>=4.12,<5",
        ],
    },
    python_requires=">=3.10",
)
