"""Entry point de desarrollo (sin instalar el paquete).

Permite ejecutar la CLI con `python -m main me` desde la raíz del repo:
el código vive en `src/`, así que sin `pip install -e .` Python no
encuentra `cli`, `core`, etc.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    # Consolas Windows (cp1252) no siempre aceptan la salida de Rich.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
