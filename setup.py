# setup.py
from setuptools import setup, find_packages

setup(
    name="finance-tracker",
    version="0.1.0",
    description="Personal finance tracker: period summaries, spending trends and budget rollups",
    packages=find_packages(include=["finance_tracker", "finance_tracker.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "openpyxl>=3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "finance-tracker=finance_tracker.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
