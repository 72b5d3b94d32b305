import logging

from courtroom.config import get_settings
from courtroom.db import Store


def init_db(database_url=None):
    print("Creating tables...")
    with Store(database_url or get_settings().database_url):
        pass
    print("✅ Done.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
