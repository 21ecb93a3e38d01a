from typing import Protocol, runtime_checkable


@runtime_checkable
class TextCompleter(Protocol):
    """Protocol for an external text-completion service.

    Abstracts the LLM backend (LangChain chat model, canned test double, etc.)
    behind a single prompt-in, text-out call. Implementations may fail
    transiently, time out, or return text that is not the JSON the caller
    asked for; callers validate the output.
    """

    async def complete(self, prompt: str) -> str:
        """Return the completion text for a prompt.

        Args:
            prompt: Fully rendered prompt text.

        Returns:
            Unstructured completion text.
        """
        ...
