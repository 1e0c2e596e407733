from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Optional

from settings.config import settings


# Top-level names of the JSON loggers created by get_json_logger()
PIPELINE_LOGGERS = ("sms_bills", "llm_bill_extraction", "ledger_repo", "card_bills")


def configure_logging(level: Optional[int] = None, json_output: Optional[bool] = None) -> None:
    """Route root, uvicorn and openai/httpx logs to one console handler.

    Pipeline loggers from `services.json_logger` keep their own handler and are
    only re-levelled here.
    """
    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO
    if json_output is None:
        json_output = settings.LOG_JSON

    formatter = "json" if json_output else "plain"
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
                "json": {"()": "services.json_logger.JsonFormatter"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "level": level,
                }
            },
            "loggers": {
                "": {"handlers": ["console"], "level": level},
                "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
                "httpx": {"handlers": ["console"], "level": logging.WARNING, "propagate": False},
                "openai": {"handlers": ["console"], "level": logging.WARNING, "propagate": False},
            },
        }
    )
    for name, existing in logging.root.manager.loggerDict.items():
        if isinstance(existing, logging.Logger) and name.split(".")[0] in PIPELINE_LOGGERS:
            existing.setLevel(level)
