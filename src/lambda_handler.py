"""AWS Lambda entry point.

Mangum translates API Gateway HTTP API (v2) events into ASGI, so the
same FastAPI app serves the HTTP routes on Lambda. The notification
WebSocket relay needs a long-lived server and is not available there.
"""

from mangum import Mangum

from src.main import app

handler = Mangum(app, lifespan="off")
