"""
Form and upload example using rest_core.

This example sends a url-encoded form, a multipart form with a file of
known size (sent with a fixed Content-Length as it is written) and a
multipart form whose file size is unknown (buffered, then sent).
"""

import io
import logging
import os
import tempfile

from rest_core import Client, MultipartForm, RestException, URLEncodedForm

# Configure logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def url_encoded_form(client: Client):
    """Demonstrate an application/x-www-form-urlencoded POST."""
    form = URLEncodedForm().add("name", "Jane Doe").add("city", "Zürich")
    logger.info(f"Posting form: {form}")

    echo = client.new_request("anything").post(form).as_json_object()
    logger.info(f"Server saw form: {echo['form']}")


def multipart_with_file(client: Client):
    """Demonstrate uploading a file from disk."""
    with tempfile.NamedTemporaryFile("wb", suffix=".txt", delete=False) as handle:
        handle.write(b"Mary had a little lamb.")
        path = handle.name

    try:
        form = MultipartForm()
        form.add("param1", "value1")
        form.add_file("file1", "file.txt", open(path, "rb"), os.path.getsize(path))
        logger.info(f"Multipart length: {form.length} bytes (streamable: {form.streamable})")

        echo = client.new_request("anything").post(form).as_json_object()
        logger.info(f"Server saw form {echo['form']} and files {echo['files']}")
    finally:
        os.unlink(path)


def multipart_unknown_length(client: Client):
    """Demonstrate a form whose size is only known after reading it."""
    form = MultipartForm()
    form.add("metadata", {"source": "example", "version": 1})
    form.add_file("report", "report.csv", io.BytesIO(b"a,b\n1,2\n"))
    logger.info(f"Multipart length: {form.length} (streamable: {form.streamable})")

    response = client.new_request("anything").put(form)
    logger.info(f"Response status: {response.code}")


def main():
    """Run all examples."""
    client = Client("http://httpbin.org/", read_timeout=10.0)

    try:
        url_encoded_form(client)
        print()

        multipart_with_file(client)
        print()

        multipart_unknown_length(client)

    except RestException as e:
        logger.error(f"Example failed: {e}")
        raise


if __name__ == "__main__":
    main()
