import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from directory import models  # noqa: F401
from directory.database import Base, engine


def main() -> None:
    Base.metadata.create_all(bind=engine)
    tables = ", ".join(sorted(Base.metadata.tables))
    print(f"Database initialized with tables: {tables}.")


if __name__ == "__main__":
    main()
