"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/dusk-network/duskup"
KEYWORDS = "dusk blockchain smart-contract wasm rust compiler toolchain installer"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name="duskup",
        version="0.1.0",
        description="Install Dusk compiler releases and drive contract builds and deployments",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.9",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "requests>=2.28",
            "tqdm>=4.64",
        ],
        extras_require={
            "test": [
                "pytest>=7.0",
            ],
        },
        entry_points={
            "console_scripts": [
                "ensure-toolchain=duskup.cli:ensure_toolchain_main",
                "duskup=duskup.cli:main",
            ],
        },
        include_package_data=True)
