# -*- coding: utf-8 -*-
from trustgraph.infra.db import db

from .trust import TrustEvent, TrustScore, RankingConfig, TrustedSource
from .agent import Agent, Operator
from .badges import BadgeDefinition, AgentBadge
