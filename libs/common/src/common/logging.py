"""Logging configuration with optional CloudWatch support."""

import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(service_name: str, level: str = "INFO") -> None:
    """Configure the root logger, adding a CloudWatch handler when enabled.

    Args:
        service_name: Name of the service, used as the CloudWatch log stream
            (e.g., "chat-relay").
        level: Root log level name.

    Environment variables:
        ENABLE_CLOUDWATCH: Set to "true" to enable CloudWatch logging
        CLOUDWATCH_LOG_GROUP: Log group name (default: "chat-relay")
    """
    log_group = os.environ.get("CLOUDWATCH_LOG_GROUP", "chat-relay")

    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # Clear any existing handlers
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(console)

    if os.environ.get("ENABLE_CLOUDWATCH", "").lower() == "true":
        try:
            import watchtower

            cw_handler = watchtower.CloudWatchLogHandler(
                log_group_name=log_group,
                log_stream_name=service_name,
                use_queues=True,
                create_log_group=True,
            )
            cw_handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(cw_handler)
            logger.info(
                "CloudWatch logging enabled: group=%s, stream=%s",
                log_group,
                service_name,
            )
        except ImportError:
            logger.warning("watchtower not installed, CloudWatch logging disabled")
        except Exception as e:
            logger.warning("Failed to initialize CloudWatch logging: %s", e)
