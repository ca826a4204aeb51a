import uvicorn
from dotenv import load_dotenv

load_dotenv()

from tripsplit.core.config import settings  # noqa: E402
from tripsplit.main import app  # noqa: E402

if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
