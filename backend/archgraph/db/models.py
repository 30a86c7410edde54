from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class GraphSession(Base):
    __tablename__ = "graph_sessions"

    id = Column(String(64), primary_key=True)
    graph_json = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class OperationLog(Base):
    __tablename__ = "operation_logs"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(64), ForeignKey("graph_sessions.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    arguments = Column(Text)
    status = Column(String(16), nullable=False)
    error = Column(Text)
    version = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
