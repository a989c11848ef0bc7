# src/libs/dlq-common/dlq_common/exceptions.py


class DlqManagerError(Exception):
    """Base class for every failure the DLQ manager reports to its callers."""
    pass


class TopicNotFoundError(DlqManagerError):
    """
    Raised when a DLQ topic identifier is not present in the registry.
    Always raised before any broker call or audit record is made.
    """
    def __init__(self, dlq_topic_id):
        self.dlq_topic_id = dlq_topic_id
        super().__init__(f"DLQ topic not found: {dlq_topic_id}")


class ReplayJobNotFoundError(DlqManagerError):
    def __init__(self, job_id):
        self.job_id = job_id
        super().__init__(f"Replay job not found: {job_id}")


class MessageNotFoundAtOffsetError(DlqManagerError):
    def __init__(self, topic: str, partition: int, offset: int):
        self.topic = topic
        self.partition = partition
        self.offset = offset
        super().__init__(f"Message not found at offset: {offset} (partition {partition} of '{topic}')")


class BrokerUnavailableError(DlqManagerError):
    """
    Raised when the broker cannot be reached after the client library has
    exhausted its own internal retries.
    """
    pass


class SendTimeoutError(DlqManagerError):
    def __init__(self, topic: str, timeout_seconds: float):
        self.topic = topic
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Kafka send timeout after {timeout_seconds:g} seconds (topic '{topic}')")


class SendRejectedError(DlqManagerError):
    def __init__(self, topic: str, broker_message: str):
        self.topic = topic
        self.broker_message = broker_message
        super().__init__(f"Failed to send message to '{topic}': {broker_message}")


class SendInterruptedError(DlqManagerError):
    """Raised when the replay writer is shut down while a send is in flight."""
    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"Message send to '{topic}' was interrupted")


class JobStateError(DlqManagerError):
    """Raised on any attempt to mutate a replay job that already reached a terminal state."""
    pass
