import asyncio

from dotenv import load_dotenv
from loguru import logger

from analytics_chat.app_config import load_json_config, parse_app_config
from analytics_chat.bootstrap import bootstrap_runtime


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    runtime = bootstrap_runtime(app)

    print("analytics-chat (type 'exit' to quit, '/help' for commands)")
    print(f"Backend: {app.api_base_url} (timeout {app.request_timeout_seconds:g}s)")
    print(f"User: {runtime.conversation.identity.user_id}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        await runtime.shell.start()
        while True:
            try:
                user_input = await asyncio.to_thread(input, "you> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed:
                continue

            try:
                await runtime.shell.run(trimmed)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        await runtime.close()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
