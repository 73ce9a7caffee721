# cgihttpd

cgihttpd is a small HTTP/1.1 web server that starts a new thread for each
connection. It serves static files, lists directories, picks default index
pages and runs CGI programs. It uses only the standard library.

## Features

- Handles `GET`, `HEAD` and `POST` requests. Several requests can be sent on
  one connection.
- Sends static files with a content type chosen from the extension. The known
  extensions are `.htm`, `.html`, `.css`, `.png`, `.jpg`, `.gif`, `.pdf` and
  `.manifest`. Any other extension gets `text/unknown`.
- A request for a directory without a trailing slash gets a
  `301 Moved Permanently` response that points to the path with the slash.
- Looks for default index files in this order:
  1. `index.cgi`, `index.php`, `index.pl` and `index.py`, which are used only
     if they are executable by others.
  2. `index.htm` and `index.html`, which are used only if they are not
     executable by others.

  If no index file is found, the server returns an HTML page that links to
  each file in the directory. Subdirectories are not listed.
- Runs any file that is executable by others as a CGI program:
  - The program runs in its own directory and gets the CGI/1.1 environment.
  - The request body, up to `Content-Length` bytes, is written to its
    standard input.
  - The program's header lines are passed on to the client after an added
    `Expires: -1` line.
  - For HTTP/1.1 requests the output is sent with chunked transfer encoding.
    For other versions the connection is closed after the output.
- If a requested file cannot be opened and the document root has a `404.htm`
  file, that page is sent with status `404 File Not Found`. Otherwise a short
  plain-text 404 response is sent.
- Rejects with `400 Bad Request` any path containing `/../` or ending in
  `/..` after URL decoding. Also rejects malformed request lines and headers.

## Installation

```
pip install .
```

## Running the server

```
cgihttpd [PORT]
```

The default port is 80. The server listens on every IPv4 interface. It serves
files from the `www` directory under the current working directory. Press
Ctrl-C to stop it.

## Directory listing tool

```
cgihttpd-dirlist [PATH]
```

This prints the visible entries of a directory, which is the current directory
by default:

- Folders are printed first, one per line, as `<name>`. Files follow as plain
  names.
- Entries whose names start with a dot are skipped.
- At most 1024 folders and 1024 files are printed.

## Guestbook CGI program

```
cgihttpd-guestbook [DATABASE]
```

This is a CGI program that stores its entries in SQLite. The database is
`guestbook.db` in the working directory unless a path is given.

- It reads the `name`, `message` and `page` form fields. They come from the
  query string, or from an `application/x-www-form-urlencoded` POST body.
- A non-empty message is stored as a new entry.
- The page shows a form for signing, then the entries five per page, newest
  first, with links to the other pages.
- Entry times are shown eight hours ahead of UTC.

To serve it, call it from an executable script under `www/`, for example
`www/cgi-bin/guestbook/guestbook.cgi`.

## Library use

- `cgihttpd.request`:
  - `parse_request` turns request lines into a `Request`. Problems are raised
    as `BadRequest` or `NotImplementedMethod`.
  - Also provides `url_decode`, `file_extension` and `local_path`.
- `cgihttpd.responses` builds response bytes:
  - `generic_response`, `redirect_response`, `listing_response`,
    `file_headers` and `encode_chunk`.
  - `directory_listing` makes the HTML listing page and `content_type_for`
    gives the content type for an extension.
- `cgihttpd.cgi`:
  - `find_index` finds the default index file.
  - `build_environment` builds the CGI environment from a `CgiContext`.
  - `run_cgi` is a context manager that runs a program and yields its output.
  - `read_cgi_headers` reads the program's header lines.
- `cgihttpd.server`:
  - `CgiServer(root, port)` has `serve_forever()`, `shutdown()` and
    `handle_connection(sock, address)`.
  - Its `ready` event is set once it is listening. Its `port` attribute then
    holds the bound port, so port 0 can be used to get a free port.
- `cgihttpd.dirlist` provides `is_hidden`, `list_directory` and
  `format_listing`.
- `cgihttpd.guestbook`:
  - `GuestbookStore` has `add`, `count` and `page`.
  - Also provides `parse_form`, `render_page` and `html_escape`.

## What it does not do

- No TLS, no IPv6, and no virtual hosts.
- No setting for the document root on the command line; the server always
  uses `www`.
- The server supports only `GET`, `HEAD` and `POST`.
- The guestbook does not accept `multipart/form-data` submissions.