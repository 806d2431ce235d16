from setuptools import find_packages, setup

setup(
    name="doradoflow",
    version="0.0.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    entry_points={"console_scripts": ["doradoflow = doradoflow.main:app"]},
    test_suite="tests",
    python_requires=">=3.10",
    install_requires=["typer", "rich", "pod5", "typing_extensions"],
    extras_require={"test": ["pytest", "numpy"]},
)
