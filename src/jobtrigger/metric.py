from prometheus_client import Counter

request_counter = Counter(
    "jobtrigger_num_req", "Total number of requests", labelnames=["path"]
)

message_counter = Counter(
    "jobtrigger_num_messages",
    "Total number of messages received",
    labelnames=["subscription"],
)

error_counter = Counter(
    "jobtrigger_num_errors",
    "Total number of errors while handling messages",
    labelnames=["subscription"],
)

job_created_counter = Counter(
    "jobtrigger_num_jobs_created",
    "Number of jobs handed to the job client",
    labelnames=["subscription", "type"],
)

ack_counter = Counter(
    "jobtrigger_num_acked",
    "Number of acknowledged messages",
    labelnames=["subscription"],
)

nack_counter = Counter(
    "jobtrigger_num_nacked",
    "Number of rejected messages",
    labelnames=["subscription"],
)
