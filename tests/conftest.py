"""Root conftest: make the src/ layout importable without installing kline-feed."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))
