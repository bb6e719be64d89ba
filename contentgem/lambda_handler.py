"""AWS Lambda entry point.

Mangum translates API Gateway HTTP API (v2) events into ASGI,
letting the ContentGem FastAPI app run unchanged on Lambda.
"""

from mangum import Mangum

from contentgem.main import app

handler = Mangum(app, lifespan="off")
