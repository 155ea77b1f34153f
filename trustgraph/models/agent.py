# -*- coding: utf-8 -*-
"""
Agent and operator registry.

Agents are upserted on ingest (subject and actor); operators group agents for
the dashboard view.
"""
from sqlalchemy import Column, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from trustgraph.database import db
from trustgraph.models.trust import utcnow


class Operator(db.Model):
    __tablename__ = 'operators'

    id = Column(String(128), primary_key=True)
    display_name = Column(String(256), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    agents = relationship("Agent", back_populates="operator")

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Agent(db.Model):
    __tablename__ = 'agents'

    id = Column(String(128), primary_key=True)
    display_name = Column(String(256), nullable=True)
    public_key = Column(Text, nullable=True)
    operator_id = Column(String(128), ForeignKey('operators.id'), nullable=True, index=True)
    meta = Column('metadata', JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_seen_at = Column(DateTime, nullable=True)

    operator = relationship("Operator", back_populates="agents")

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
            'operator_id': self.operator_id,
            'metadata': self.meta,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'last_seen_at': self.last_seen_at.isoformat() if self.last_seen_at else None,
        }
