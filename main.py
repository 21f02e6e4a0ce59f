"""
asyncslot demo entry point
Streams a chat completion from the configured OpenAI-compatible provider
"""

import asyncio
import sys

from loguru import logger

from asyncslot.ai.providers import AIConfig, get_provider
from asyncslot.services import (
    StreamConsumer,
    StreamHandlers,
    StreamRequest,
    close_http_client,
    openai_sse_transform,
)


def build_request(prompt: str, config: AIConfig) -> StreamRequest:
    spec = get_provider(config.provider)
    body = spec.format_request(prompt, config)
    body["stream"] = True
    return StreamRequest(
        endpoint=spec.endpoint(config),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        },
        body=body,
    )


async def main(prompt: str) -> None:
    """Main function"""
    config = AIConfig()
    if config.provider not in ("groq", "together"):
        logger.error(f"Streaming demo needs an OpenAI-compatible provider, got '{config.provider}'")
        return
    if not config.api_key:
        logger.error("Set AI_API_KEY to run the demo")
        return

    consumer = StreamConsumer(
        build_request(prompt, config),
        transform=openai_sse_transform,
        handlers=StreamHandlers(
            on_chunk=lambda chunk: print(chunk, end="", flush=True),
            on_complete=lambda text: logger.info(f"Stream complete ({len(text)} chars)"),
            on_error=lambda e: logger.error(f"Stream failed: {e}"),
        ),
    )

    try:
        await consumer.start_stream()
    except asyncio.CancelledError:
        # Ctrl+C under asyncio.run arrives as cancellation of this task
        logger.info("Received interrupt signal, stream aborted")
        raise
    finally:
        print()
        await close_http_client()


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "Say hello in five words."))
