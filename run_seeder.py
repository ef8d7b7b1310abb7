"""Utility script to populate demo data for local environments."""

from academia.config import configure_logging
from academia.db import init_db
from academia.seed import ensure_demo_data


def main() -> None:
	"""Initialise the database schema and load deterministic demo data."""
	configure_logging()
	init_db()
	ensure_demo_data()


if __name__ == "__main__":
	main()
