"""
Basic client example using rest_core.

This example demonstrates configuring a Client, deriving Requests with
route params and query strings, and reading text, JSON and streaming
responses from httpbin.org.
"""

import logging

from rest_core import Client, RestException

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def status_request(client: Client):
    """Demonstrate that error statuses come back without a result."""
    logger.info("Requesting status/418...")

    response = client.new_request("status/418").get()
    logger.info(f"Response status: {response.code} {response.message}")
    logger.info(f"Has result: {response.has_result}")


def basic_auth_request(client: Client):
    """Demonstrate basic authentication with route params."""
    logger.info("Requesting basic-auth with route params...")

    request = client.new_request("basic-auth/{user}/{pass}").basic("ausername", "mpassword")
    response = request.get("user", "ausername", "pass", "mpassword")
    logger.info(f"Response status: {response.code}")
    logger.info(f"Authenticated: {response.as_json_object()['authenticated']}")


def json_request(client: Client):
    """Demonstrate a JSON POST with a query string."""
    logger.info("Posting JSON to anything...")

    response = (
        client.new_request("anything")
        .json()
        .query("page", 1)
        .post({"message": "Hello, World!"})
    )
    echo = response.as_json_object()
    logger.info(f"Server saw: {echo['json']} with args {echo['args']}")


def streaming_response(client: Client):
    """Demonstrate reading a binary response as a stream."""
    logger.info("Requesting image/png...")

    with client.new_request("image/png").get() as response:
        total_bytes = 0
        chunk_count = 0
        for chunk in response.as_stream():
            total_bytes += len(chunk)
            chunk_count += 1
        logger.info(f"Streaming complete: {total_bytes} bytes in {chunk_count} chunks")


def main():
    """Run all examples."""
    logger.info("Starting rest_core client examples...")

    client = Client("http://httpbin.org/").header("User-Agent", "rest_core-example")

    try:
        status_request(client)
        print()

        basic_auth_request(client)
        print()

        json_request(client)
        print()

        streaming_response(client)

    except RestException as e:
        logger.error(f"Example failed: {e}")
        raise

    logger.info("All examples completed successfully!")


if __name__ == "__main__":
    main()
