"""`python -m sdn` エントリ。"""

from sdn.cli import app

if __name__ == "__main__":
    app(prog_name="sdn")
