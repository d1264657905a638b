from setuptools import setup, find_packages

setup(
    name="vouchergen",
    version="1.0.0",
    description="Unique random voucher code generation with adaptive code length",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "flask>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "hypothesis>=6.92.1",
        ],
    },
)
