from setuptools import setup, find_packages

setup(
    name="bulknote",
    version="0.1.0",
    description="Bulk export of notes to zip archives and batched saving to an external service",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=["InquirerPy", "tqdm"],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "bulknote=bulknote.__main__:main",
        ]
    },
)
