"""Console harness: chat with the assistant and keep the memory janitor running."""

import asyncio
import logging
import sys

from aguwai.config import settings
from aguwai.llm.client import AnthropicProvider
from aguwai.memory.cleanup import MemoryJanitor
from aguwai.memory.store import MemoryStore, MemoryStoreError
from aguwai.orchestration.engine import AssistantEngine, TurnPersistenceError
from aguwai.repositories.documents import PortalDocumentRepository
from aguwai.repositories.jobs import PortalJobRepository

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

STORE_UNAVAILABLE = "Sorry, I can't reach my memory right now. Please try again in a moment."


def create_engine(store: MemoryStore | None = None) -> AssistantEngine:
    """Wire an engine from settings."""
    return AssistantEngine(
        store=store or MemoryStore.get(),
        llm=AnthropicProvider(settings.chat_model),
        jobs=PortalJobRepository(),
        documents=PortalDocumentRepository(),
        tool_llm=AnthropicProvider(settings.tool_model),
    )


async def respond(
    engine: AssistantEngine,
    thread_id: str | None,
    utterance: str,
    user_id: str | None = None,
) -> tuple[str | None, str]:
    """Run one console turn. Returns the thread to continue on and the reply to print."""
    try:
        result = await engine.process_message(thread_id, utterance, user_id)
    except TurnPersistenceError as exc:
        logger.error("Conversation not saved; continuing on thread %s", exc.thread_id)
        return exc.thread_id, exc.answer
    except MemoryStoreError:
        logger.exception("Could not load thread %s", thread_id)
        return thread_id, STORE_UNAVAILABLE
    return result.thread_id, result.answer


async def _chat(user_id: str | None) -> None:
    store = MemoryStore.get()
    engine = create_engine(store)
    janitor = MemoryJanitor(store)
    await janitor.start()

    thread_id: str | None = None
    try:
        while True:
            utterance = await asyncio.to_thread(input, "you> ")
            if not utterance.strip():
                continue
            thread_id, reply = await respond(engine, thread_id, utterance, user_id)
            print(f"assistant> {reply}")
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await janitor.stop()


def main() -> None:
    """Start a console chat. Pass a user ID as the first argument to personalize."""
    user_id = sys.argv[1] if len(sys.argv) > 1 else None
    logger.info("Starting assistant with model %s (user=%s)", settings.chat_model, user_id)
    asyncio.run(_chat(user_id))


if __name__ == "__main__":
    main()
