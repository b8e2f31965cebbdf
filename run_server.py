"""
Run the service with uvicorn using host and port from settings.

Access log lines for the monitoring endpoints are filtered out.
"""

if __name__ == "__main__":
    import copy

    import uvicorn
    from uvicorn.config import LOGGING_CONFIG

    from chatcast.settings import app_settings

    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["filters"] = {
        "exclude_monitoring": {
            "()": "chatcast.uvicorn_filters.ExcludeMetricsFilter"
        }
    }
    log_config["handlers"]["access"]["filters"] = ["exclude_monitoring"]

    uvicorn.run(
        "chatcast:application",
        factory=True,
        host=app_settings.HOST,
        port=app_settings.PORT,
        log_config=log_config,
    )
