import sys
from pathlib import Path

# Ensure we can import the package from ./src
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from kairo.main import cli  # noqa: E402

if __name__ == "__main__":
    # No subcommand means: resume or start a session
    args = sys.argv[1:] or ["run"]
    cli.main(args=args, prog_name="kairo")
