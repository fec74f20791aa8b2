"""
pytest configuration and fixtures.
"""

from pathlib import Path
from typing import Callable, Dict, Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpmessage import MessageConfig, set_default_config


@pytest.fixture(autouse=True)
def reset_default_config() -> Generator[None, None, None]:
    """Every test starts from the environment-derived default config."""
    set_default_config(None)
    yield
    set_default_config(None)


@pytest.fixture
def sample_environ() -> Dict[str, str]:
    """Server variables for a GET through a front controller script."""
    return {
        "REQUEST_METHOD": "GET",
        "REQUEST_URI": "/cgi-bin/app.cgi/users/42?tab=posts",
        "SCRIPT_NAME": "/cgi-bin/app.cgi",
        "QUERY_STRING": "tab=posts",
        "SERVER_PROTOCOL": "HTTP/1.1",
        "SERVER_NAME": "example.com",
        "SERVER_PORT": "80",
        "HTTP_HOST": "example.com",
        "HTTP_ACCEPT": "application/json",
        "HTTP_COOKIE": "session=abc123; theme=dark",
        "HTTP_CACHE_CONTROL": "no-cache",
        "CONTENT_TYPE": "text/plain",
    }


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    """Directory playing the role of the server's upload temp dir."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def config(upload_dir: Path) -> MessageConfig:
    """Test configuration pointing uploads at upload_dir."""
    return MessageConfig(upload_dir=str(upload_dir), copy_chunk_size=4)


@pytest.fixture
def make_upload(upload_dir: Path) -> Callable[[str, bytes], Path]:
    """Create a temp file in upload_dir, as a server would for an upload."""
    def _make(name: str, content: bytes = b"hello") -> Path:
        path = upload_dir / name
        path.write_bytes(content)
        return path
    return _make
