import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

# LLM (OpenAI-compatible chat completions endpoint)
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "http://host.docker.internal:11434/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "mistral:7b-instruct")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "300"))
AGENT_MAX_ROUNDS = int(os.getenv("AGENT_MAX_ROUNDS", "8"))

# Layout engine (elkjs behind a small HTTP wrapper)
ELK_LAYOUT_URL = os.getenv("ELK_LAYOUT_URL", "http://localhost:8090/layout")
LAYOUT_TIMEOUT = float(os.getenv("LAYOUT_TIMEOUT", "10"))

# Session store
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./archgraph.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
