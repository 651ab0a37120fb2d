"""Switchboard quickstart: stream one answer from whichever provider is configured."""

import asyncio

from switchboard import ChatGateway, Message, Role, TextDelta, create_registry
from switchboard.streaming import StreamError


async def main() -> None:
    gateway = ChatGateway(create_registry())
    try:
        async for event in gateway.stream(
            [Message(role=Role.USER, content="Explain Python generators in two sentences")]
        ):
            if isinstance(event, TextDelta):
                print(event.text, end="", flush=True)
            elif isinstance(event, StreamError):
                print(f"\nError: {event.message}")
        print()
    finally:
        await gateway.aclose()


asyncio.run(main())
