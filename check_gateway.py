"""
PROVIDER CHECK SCRIPT
=====================

Sends one short prompt through the CompletionGateway and reports what happened.
Use it to tell a bad/missing API key apart from a relay or history problem.

USAGE:
    python check_gateway.py
    python check_gateway.py "Write a haiku about logs"

The API key itself is never printed: only its length and first characters.
Exits with status 1 if the call failed.
"""

import logging
import sys

from chatrelay.services.completion_gateway import CompletionGateway
from chatrelay.services.errors import ProviderError
from chatrelay.utils.masking import mask_key

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("chatrelay")

DEFAULT_CHECK_PROMPT = "Hello, please respond with a short greeting."


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    prompt = " ".join(argv) or DEFAULT_CHECK_PROMPT

    gateway = CompletionGateway()
    logger.info("Provider: %s  Model: %s", gateway.provider, gateway.model)
    if not gateway.api_keys:
        logger.error("No API key set for provider '%s'", gateway.provider)
        return 1
    for i, key in enumerate(gateway.api_keys, 1):
        logger.info("API key %s found, length %s, starts with %s", i, len(key), mask_key(key))

    logger.info("Sending prompt: %s", prompt)
    try:
        text = gateway.complete(prompt)
    except ProviderError as e:
        logger.error("Provider check failed: %s", e, exc_info=e.__cause__ is not None)
        return 1

    logger.info("Response text: %s", text)
    logger.info("Provider check completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
