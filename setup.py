import os.path
import re

from setuptools import find_namespace_packages, setup

VERSION_RE = re.compile(r"""__version__ = ['"]([0-9.]+)['"]""")
BASE_PATH = os.path.dirname(__file__)


with open(os.path.join(BASE_PATH, "proxychain", "__init__.py")) as f:
    try:
        version = VERSION_RE.search(f.read()).group(1)
    except AttributeError:
        raise RuntimeError("Unable to determine version.")


with open(os.path.join(BASE_PATH, "README.md")) as readme:
    long_description = readme.read()


setup(
    name="proxychain",
    description="A local proxy that translates between "
    "SOCKS5 and HTTP CONNECT, optionally through a chain of proxies.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    version=version,
    packages=find_namespace_packages(include=["proxychain*"]),
    python_requires=">=3.7",
    install_requires=["curio>=1.4", "iofree>=0.2.5", "httptools>=0.1"],
    extras_require={"test": ["pytest", "coverage", "pytest-cov"]},
    entry_points={"console_scripts": ["proxychain = proxychain.__main__:main"]},
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
