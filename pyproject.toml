[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cgihttpd"
version = "0.5.0"
description = "A light, CGI-capable HTTP/1.1 web server with directory listings and a sample guestbook"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "cgi", "web", "guestbook", "directory-listing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cgihttpd = "cgihttpd.server:main"
cgihttpd-dirlist = "cgihttpd.dirlist:main"
cgihttpd-guestbook = "cgihttpd.guestbook:main"

[tool.hatch.build.targets.wheel]
packages = ["cgihttpd"]

[tool.pytest.ini_options]
addopts = "-ra"
