import os

import setuptools
from setuptools import setup


# Utility function to read the README file.
# Used for the long_description.
def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()


dependencies = [
    "redis>=5.0.1",
    "aiohttp>=3.10.11",
    "PyYAML>=6.0",
    "colorlog>=6.8",
    "concurrent-log-handler>=0.9.25",
]

test_dependencies = [
    "pytest>=8.3.4",
    "fakeredis>=2.21",
]

dev_dependencies = [
    "types-pyyaml==6.0.12.20240917",
    "types-setuptools==75.6.0.20241126",
]

kwargs = dict(
    name="pool-payouts",
    version="1.0",
    description=("Reward schedule and payout ledger core for a mining pool."),
    license="Apache-2.0",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    install_requires=dependencies,
    extras_require=dict(
        test=test_dependencies,
        dev=dev_dependencies,
    ),
    entry_points={
        "console_scripts": [
            "payout-server=payouts.payout_server:main",
        ],
    },
    long_description=read("README.md"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Topic :: Utilities",
        "License :: OSI Approved :: Apache Software License",
    ],
)

setup(**kwargs)  # type: ignore
