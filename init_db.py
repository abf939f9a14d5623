import asyncio
import logging
import sys

from backend.app.db import init_models

logging.basicConfig(level=logging.INFO)


if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    # --drop: reset the database (DEV MODE ONLY)
    asyncio.run(init_models(drop="--drop" in sys.argv))
    print(">>> Tables Created Successfully!")
