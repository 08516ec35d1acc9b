import os
from dotenv import load_dotenv

load_dotenv()

bind_host = os.getenv("BIND_HOST", "0.0.0.0")
redis_host = os.getenv("REDIS_HOST", "localhost")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
redis_db = int(os.getenv("REDIS_DB", "0"))
memory_key = os.getenv("MEMORY_KEY", "turn_relay:memory")
shutdown_grace_seconds = int(os.getenv("SHUTDOWN_GRACE_SECONDS", "10"))
startup_timeout_seconds = float(os.getenv("STARTUP_TIMEOUT_SECONDS", "10"))
log_level = os.getenv("LOG_LEVEL", "INFO")

if __name__ == "__main__":
    print(bind_host, redis_host, redis_port, redis_db, memory_key, shutdown_grace_seconds)
