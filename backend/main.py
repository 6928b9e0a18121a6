from dotenv import load_dotenv
load_dotenv()

import logging

from bootstrap import create_app
from settings import Settings

settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    app.listen()
