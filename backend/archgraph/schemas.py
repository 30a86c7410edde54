from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List


class CreateGraphRequest(BaseModel):
    graph: Optional[Dict[str, Any]] = None  # ELK JSON; empty root when omitted
    use_default: bool = False  # Start from the sample architecture


class GraphResponse(BaseModel):
    id: str
    version: int
    graph: Dict[str, Any]
    summary: Optional[Dict[str, Any]] = None


class OperationRequest(BaseModel):
    """One function call, exactly as the agent would send it"""
    name: str
    arguments: Any = None  # object or JSON string
    expected_version: Optional[int] = None  # defaults to the stored version


class OperationResponse(BaseModel):
    id: str
    version: int
    success: bool
    output: Dict[str, Any]


class BatchRequest(BaseModel):
    operations: List[Dict[str, Any]]
    expected_version: Optional[int] = None


class BatchResponse(BaseModel):
    id: str
    version: int
    summary: str
    results: List[Dict[str, Any]]
    graph: Dict[str, Any]


class LayoutRequest(BaseModel):
    direction: str = "RIGHT"  # RIGHT | LEFT | DOWN | UP
    spacing: int = Field(default=30, gt=0)
    hierarchy_handling: str = "INCLUDE_CHILDREN"


class ChatRequest(BaseModel):
    message: str
    history: List[Dict[str, Any]] = []  # Previous chat messages, oldest first


class ChatResponse(BaseModel):
    id: str
    version: int
    reply: Optional[str] = None
    rounds: int
    operations: List[Dict[str, Any]]
    graph: Dict[str, Any]
