# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "pagebrief"

DOCUMENTS: Final[str] = f"{ROOT}:documents"  # one hash per normalized URL
CHUNKS: Final[str] = f"{ROOT}:chunks"  # one hash per (document id, chunk index)
