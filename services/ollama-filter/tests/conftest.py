"""Shared test fixtures for Ollama filter tests."""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def completion_body() -> str:
    """Mock Ollama /v1/completions response with three choices."""
    return json.dumps({
        "id": "cmpl-1",
        "object": "text_completion",
        "model": "phi3",
        "choices": [
            {"text": "first answer", "index": 0, "finish_reason": "stop"},
            {"text": "second answer", "index": 1, "finish_reason": "stop"},
            {"text": "third answer", "index": 2, "finish_reason": "length"},
        ],
    })


@pytest.fixture
def world_body() -> str:
    return json.dumps({"choices": [{"text": "world"}]})


@pytest.fixture
def conf_file(tmp_path: Path) -> Path:
    """Emergence config with a custom [ollama] section."""
    path = tmp_path / "emergence.conf"
    path.write_text(
        "[ollama]\n"
        "url = http://gpu-box:11434/v1/completions\n"
        "model = llama3\n"
        "\n"
        "[filters]\n"
        "registry = http://localhost:8000\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def no_emergence_conf(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests from reading a real ~/.config/emergence file."""
    from config import settings

    monkeypatch.setattr(settings, "EMERGENCE_CONF_PATH", str(tmp_path / "missing.conf"))
