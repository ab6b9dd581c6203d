from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Reply:
    reply_id: str
    thread_id: str
    text: str
    created_on: datetime
    delete_password: str
    reported: bool = False
