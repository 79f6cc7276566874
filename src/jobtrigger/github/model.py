from typing import Literal, Optional

import pydantic


class Model(pydantic.BaseModel):
    pass


class CommitStatus(Model):
    state: Literal["error", "failure", "pending", "success"]
    context: str
    description: Optional[str] = None
    target_url: Optional[str] = None
