import uvicorn
from dotenv import load_dotenv

from analytics_chat.app_config import load_json_config, parse_app_config
from analytics_chat.gateway import TransportGateway
from analytics_chat.logging_config import GATEWAY_LOG_SINKS, setup_logging
from analytics_chat.server.app import create_app


def main() -> None:
    load_dotenv()

    app_config = parse_app_config(load_json_config())
    setup_logging(level=app_config.log_level, consumers=app_config.log_consumers, defaults=GATEWAY_LOG_SINKS)

    gateway = TransportGateway(app_config.api_base_url, timeout_seconds=app_config.request_timeout_seconds)
    uvicorn.run(
        create_app(gateway),
        host=app_config.gateway_host,
        port=app_config.gateway_port,
    )


if __name__ == "__main__":
    main()
