import os
import re
import setuptools
import sys

DESCRIPTION = "safewrite resolves per-call write concerns (safe mode) for a " \
              "lightweight in-memory, Mongo-compatible document store."

if sys.version_info[:2] < (3, 8):
    print("ERROR: this package requires Python 3.8 or later!")
    sys.exit(1)

with open("README.md", "r") as fh:
    long_description = fh.read()

with open(os.path.join("safewrite", "__init__.py")) as f:
    version = re.search(r"^VERSION \= \"([0-9.]+)\"", f.read(),
                        re.MULTILINE).group(1)

setuptools.setup(
    name="safewrite",
    version=version,
    description=DESCRIPTION,
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        'pymongo>=3.0',
        'sortedcontainers>=2.3,<3.0'
    ],
    extras_require={
        'test': ['pytest'],
    },
)
