#!/usr/bin/env python

from setuptools import find_packages, setup

from bucketdav._version import __version__

version = __version__


try:
    with open("README.md", encoding="utf-8") as fp:
        readme = fp.read()
except OSError:
    readme = "(Readme file not found.)"

# Cheroot is the default server for the stand-alone mode
# (`bucketdav.server.server_cli`).
install_requires = ["cheroot", "defusedxml", "Jinja2", "json5", "PyYAML"]
tests_require = ["boto3", "pytest", "WebTest"]

setup(
    name="BucketDAV",
    version=version,
    author="Martin Wendt and contributors",
    url="https://github.com/mar10/wsgidav/",
    description="WebDAV server on top of a key-prefix object store, based on WSGI",
    long_description=readme,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Information Technology",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
        "Topic :: Internet :: WWW/HTTP :: WSGI",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Server",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords="web wsgi webdav application server s3 object storage",
    license="MIT",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests"]),
    package_data={"bucketdav.dir_browser": ["htdocs/*.*"]},
    install_requires=install_requires,
    py_modules=[],
    zip_safe=False,
    extras_require={"s3": ["boto3"], "test": tests_require},
    entry_points={"console_scripts": ["bucketdav = bucketdav.server.server_cli:run"]},
)
