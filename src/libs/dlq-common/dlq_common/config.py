# src/libs/dlq-common/dlq_common/config.py
import os
from dotenv import load_dotenv

# Load environment variables from a .env file for local development.
load_dotenv()


# Database Configurations
POSTGRES_USER = os.getenv("POSTGRES_USER", "user")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "password")
POSTGRES_DB = os.getenv("POSTGRES_DB", "dlq_manager_db")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "postgres")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

# Kafka Configurations
KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS_HOST") or os.getenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9093")

# DLQ browsing
DLQ_BROWSE_PARTITION = int(os.getenv("DLQ_BROWSE_PARTITION", "0"))
DLQ_BROWSE_POLL_TIMEOUT_SECONDS = float(os.getenv("DLQ_BROWSE_POLL_TIMEOUT_SECONDS", "2.0"))
DLQ_BROWSE_MAX_POLLS = int(os.getenv("DLQ_BROWSE_MAX_POLLS", "10"))
DLQ_DEFAULT_PAGE_SIZE = int(os.getenv("DLQ_DEFAULT_PAGE_SIZE", "10"))
DLQ_MAX_PAGE_SIZE = int(os.getenv("DLQ_MAX_PAGE_SIZE", "100"))

# Error breakdown scan
DLQ_ERROR_SCAN_MAX_POLLS = int(os.getenv("DLQ_ERROR_SCAN_MAX_POLLS", "1000"))
DLQ_ERROR_SCAN_BATCH_SIZE = int(os.getenv("DLQ_ERROR_SCAN_BATCH_SIZE", "500"))

# Replay
DLQ_REPLAY_READ_TIMEOUT_SECONDS = float(os.getenv("DLQ_REPLAY_READ_TIMEOUT_SECONDS", "5.0"))
DLQ_REPLAY_SEND_TIMEOUT_SECONDS = float(os.getenv("DLQ_REPLAY_SEND_TIMEOUT_SECONDS", "30.0"))
DLQ_REPLAY_PRODUCER_RETRIES = int(os.getenv("DLQ_REPLAY_PRODUCER_RETRIES", "3"))
DLQ_REPLAY_DEFAULT_INITIATOR = os.getenv("DLQ_REPLAY_DEFAULT_INITIATOR", "system")
