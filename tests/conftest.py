import pytest


class FakeLlm:
    """
    Scripted stand-in for the model capabilities. Each stream_chat call
    replays the next response (the last one repeats); embed_texts is only
    present when an embed function is given.
    """

    def __init__(self, responses=None, embed=None):
        if isinstance(responses, str):
            responses = [responses]
        self.responses = list(responses or [])
        self.calls = []
        if embed is not None:
            self.embed_texts = embed

    def stream_chat(self, messages):
        self.calls.append(messages)
        content = ""
        if self.responses:
            content = self.responses[min(len(self.calls) - 1, len(self.responses) - 1)]
        if content:
            yield {"type": "content", "content": content}
        yield {"type": "done"}


@pytest.fixture
def fake_llm():
    return FakeLlm


@pytest.fixture
def english_tutorial():
    return "\n".join([
        "[00:00:00.000 --> 00:00:05.000] Welcome to this Python tutorial",
        "[00:00:05.000 --> 00:00:12.000] First we install the dependencies with pip",
        "[00:00:12.000 --> 00:00:20.000] Copy the .env file, then configure the API key",
        "[00:00:20.000 --> 00:00:30.000] Then we run the project step by step",
        "[00:00:30.000 --> 00:00:36.000] Bye bye",
    ])
