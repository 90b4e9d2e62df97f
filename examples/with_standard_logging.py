"""
Example of using elasticlog with Python's standard logging module.
"""

import logging

from elasticlog import ElasticHandler, ElasticLog, load_config_from_env


def main():
    # ELASTICLOG_HOST and friends configure the connection
    shipper = ElasticLog(load_config_from_env())
    shipper.initialize()

    handler = ElasticHandler(
        shipper,
        index="app-logs",
        extra_fields={"environment": "development"},
        close_shipper=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("my_app")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    try:
        logger.debug("Debug message")
        logger.info("Info message with extra", extra={"user_id": 42})
        logger.warning("Warning message")

        try:
            raise ValueError("Something went wrong!")
        except ValueError:
            logger.exception("Caught an exception")

        for i in range(10):
            logger.info(f"Processing step {i}")

    finally:
        # Closes the shipper too
        handler.close()


if __name__ == "__main__":
    main()
