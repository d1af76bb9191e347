"""
Environment-backed defaults for the nomination client.

Values are read once at import (after loading .env) and used as argparse
defaults; command line flags override them.
"""
import os

from dotenv import load_dotenv

load_dotenv()

RELAY_WS = os.getenv("RELAY_WS", "ws://127.0.0.1:9944")
PARA_WS = os.getenv("PARA_WS", "ws://127.0.0.1:9948")
NOMINATOR_SEED = os.getenv("NOMINATOR_SEED", "//Eve")
TICK_SECONDS = float(os.getenv("TICK_SECONDS", 120))
ERA_POLL_SECONDS = float(os.getenv("ERA_POLL_SECONDS", 60))

MAX_VALIDATORS = int(os.getenv("MAX_VALIDATORS", 16))
ERA_WINDOW = int(os.getenv("ERA_WINDOW", 28))
MAX_COMMISSION_RATE = os.getenv("MAX_COMMISSION_RATE", "0.075")

# Scoring weights (crf, nf, epf)
COMMISSION_WEIGHT = float(os.getenv("COMMISSION_WEIGHT", 100))
NOMINATION_WEIGHT = float(os.getenv("NOMINATION_WEIGHT", 1000))
ERA_POINTS_WEIGHT = float(os.getenv("ERA_POINTS_WEIGHT", 10))

DERIVATIVE_INDEX = os.getenv("DERIVATIVE_INDEX")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
