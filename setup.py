from setuptools import setup, find_packages

setup(
    name="cobradesign",
    version="0.1",
    description="Bilevel strain design (OptKnock) for the COBRApy framework",
    long_description=("Bilevel strain design for the COBRApy framework: OptKnock knockout strategies "
                      "computed as mixed-integer linear programs, with helpers for irreversible models, "
                      "flux balance analysis and the mapping of gene expression data to reactions"),
    long_description_content_type="text/plain",
    license="Apache License 2.0",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=["cobra", "optlang", "swiglpk", "scipy", "numpy", "pandas"],
    extras_require={"tests": ["pytest", "pytest-timeout"]},
    classifiers=[
        "Intended Audience :: Science/Research", "Development Status :: 3 - Alpha", "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10", "Programming Language :: Python :: 3.11", "Programming Language :: Python :: 3.12",
        "Natural Language :: English", "Operating System :: OS Independent", "Topic :: Scientific/Engineering :: Bio-Informatics"
    ],
    keywords=["metabolism", "constraint-based", "mixed-integer", "strain design", "optknock"],
    zip_safe=False,
)
