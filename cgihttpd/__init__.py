"""A light, CGI-capable HTTP/1.1 web server, a directory lister and a guestbook CGI program."""

__version__ = "0.5.0"