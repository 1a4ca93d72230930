"""
Scripted translation oracle for tests.

MockProvider answers from a queue of canned responses (strings are returned
as content, exceptions are raised). When the queue is empty it reads the
segment array out of the prompt and answers with every segment passed
through ``translate``.
"""

import json

from epubsafe.core.llm.base import LLMProvider, LLMResponse


def segments_from_prompt(prompt):
    """The JSON array of segments embedded in a batch prompt."""
    before_output = prompt.rsplit("# OUTPUT", 1)[0]
    lines = [line for line in before_output.strip().splitlines() if line.strip()]
    return json.loads(lines[-1])


def upper_translation(text):
    return text.upper()


class MockProvider(LLMProvider):
    """LLMProvider returning canned or computed answers and recording prompts."""

    def __init__(self, responses=None, translate=upper_translation, model="mock-model"):
        super().__init__(model)
        self.responses = list(responses or [])
        self.translate = translate
        self.prompts = []
        self.system_prompts = []
        self.closed = False

    @property
    def call_count(self):
        return len(self.prompts)

    async def generate(self, prompt, timeout=30, system_prompt=None):
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)

        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return LLMResponse(content=response)

        segments = segments_from_prompt(prompt)
        translated = [self.translate(segment) for segment in segments]
        return LLMResponse(content=json.dumps(translated, ensure_ascii=False))

    async def close(self):
        self.closed = True
        await super().close()
