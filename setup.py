from setuptools import setup, find_packages

setup(
    name="scoreperf",
    version="0.1.0",
    description="Performance and stability metrics for binary credit scores (KS, Lift, ROC/AUC, P-R, PSI)",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial",
    ],
    keywords=["credit-scoring", "ks", "auc", "psi", "model-validation"],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"scoreperf": ["core/templates/*.yaml"]},
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21",
        "pandas>=1.3",
        "scipy>=1.7",
        "matplotlib>=3.5",
        "PyYAML>=6.0",
        "tqdm>=4.60",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
            "scikit-learn>=1.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.910",
        ],
    },
)
