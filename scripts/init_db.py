import argparse
from pathlib import Path
import sys

# Ensure project root is on sys.path
current_dir = Path(__file__).resolve().parent
project_root = current_dir.parent

if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

try:
    from shared_utils.config_loader import get_settings
    from shared_utils.di_container import get_di_container
except ImportError:
    print("Error: Could not import project modules. Run this from the project root.")
    sys.exit(1)


def init_db(reset: bool = False) -> None:
    """
    Create the meetings, evaluations and report tables.

    With ``reset`` every table is dropped first (all data is lost).
    """
    settings = get_settings()
    dialect = settings.database_uri.split(":", 1)[0]
    print(f"Targeting {dialect} database ({settings.environment})")

    if reset:
        print("Dropping existing tables...")
    get_di_container().init_storage(reset=reset)
    print("Schema is ready.")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the feedback service schema.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="drop all tables before creating them (destroys data)",
    )
    args = parser.parse_args(argv)
    init_db(reset=args.reset)
    return 0


if __name__ == "__main__":
    sys.exit(main())
