from setuptools import setup, find_packages

setup(
    name="luca-core",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pydantic>=2",
        "pyyaml",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        'console_scripts': [
            'luca=luca.main:main',
        ],
    },
)
