from image_gateway.config import LOG_LEVEL

# uid and generation_id arrive through `extra=` and are appended by the formatter
JSON_FORMAT = (
    "%(timestamp)s %(levelname)s %(name)s %(message)s "
    "%(otelTraceID)s %(otelSpanID)s %(otelServiceName)s"
)

# client libraries log every request at INFO/DEBUG
QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "google_genai")


def build_logging_config(level=LOG_LEVEL):
    loggers = {
        "": {"handlers": ["default"], "level": level, "propagate": True},
        "image_gateway": {"level": level, "propagate": True},
        "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": JSON_FORMAT,
                "timestamp": True,
                "rename_fields": {"levelname": "level"},
                "static_fields": {"service": "image-gateway"},
            },
        },
        "handlers": {
            "default": {
                "formatter": "json",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": loggers,
    }


LOGGING_CONFIG = build_logging_config()
