"""Derived analytics records: database sampling, client analysis, capabilities, impact."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class TypeDistribution(BaseModel):
    key_type: str
    count: int
    percentage: float


class TypeMemory(BaseModel):
    key_type: str
    memory_bytes: int
    percentage: float


class ExpiryAnalysis(BaseModel):
    keys_with_ttl: int = 0
    keys_without_ttl: int = 0
    expiring_in_1h: int = 0
    expiring_in_24h: int = 0
    expiring_in_7d: int = 0
    memory_to_free_1h: int = 0
    memory_to_free_24h: int = 0


class KeyMemoryInfo(BaseModel):
    key: str
    key_type: str
    memory_bytes: int
    ttl: int


class NamespaceInfo(BaseModel):
    namespace: str
    key_count: int
    memory_bytes: int


class DatabaseAnalysisReport(BaseModel):
    total_keys: int = 0
    total_memory: int = 0
    type_distribution: List[TypeDistribution] = Field(default_factory=list)
    memory_by_type: List[TypeMemory] = Field(default_factory=list)
    expiry_analysis: ExpiryAnalysis = Field(default_factory=ExpiryAnalysis)
    top_keys_by_memory: List[KeyMemoryInfo] = Field(default_factory=list)
    namespaces: List[NamespaceInfo] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class IdleClient(BaseModel):
    id: str
    addr: str
    idle_seconds: int
    last_command: str
    connected_seconds: int


class ClientMemoryInfo(BaseModel):
    id: str
    addr: str
    output_buffer_bytes: int
    query_buffer_bytes: int


class CommandClientInfo(BaseModel):
    command: str
    client_count: int
    client_ips: List[str] = Field(default_factory=list)


class SuspiciousPattern(BaseModel):
    pattern_type: str
    severity: str
    description: str
    affected_clients: List[str] = Field(default_factory=list)
    recommendation: str


class ClientAnomaly(BaseModel):
    anomaly_type: str
    client_addr: str
    details: str
    severity: str


class ClientAnalysisReport(BaseModel):
    total_clients: int = 0
    idle_clients: List[IdleClient] = Field(default_factory=list)
    high_memory_clients: List[ClientMemoryInfo] = Field(default_factory=list)
    clients_by_command: List[CommandClientInfo] = Field(default_factory=list)
    suspicious_patterns: List[SuspiciousPattern] = Field(default_factory=list)
    anomalies: List[ClientAnomaly] = Field(default_factory=list)


class ServerCapabilities(BaseModel):
    server_type: str = "Redis"
    version: str = ""
    cluster_enabled: bool = False
    cluster_mode: str = "standalone"
    supports_memory_commands: bool = False
    supports_latency_commands: bool = False
    supports_module_commands: bool = True
    is_read_replica: bool = False
    max_clients: int = 10000
    total_keys: int = 0


class RiskLevel(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class PerformanceWarning(BaseModel):
    level: RiskLevel
    message: str
    command: str
    estimated_impact: str
