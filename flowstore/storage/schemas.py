"""
Storage Entity Schemas

Minimal pydantic shapes of the orchestration entities the key derivation
reads from. The engine's own flow/execution/task-run/trigger models can be
passed to the adapters in ``storage/keys.py`` directly; these exist for
callers (and tests) that only have the identifying fields at hand.

@.architecture
Incoming: Engine callers, tests --- {namespace, flow id, execution id, task id, task run id, trigger id}
Processing: Pydantic validation --- {1 job: data_validation}
Outgoing: storage/keys.py --- {FlowRef, ExecutionRef, TaskRunRef, TriggerContextRef}
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FlowRef(BaseModel):
    """Identifying fields of a flow."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    namespace: str = Field(..., min_length=1)


class ExecutionRef(BaseModel):
    """Identifying fields of an execution."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    namespace: Optional[str] = None
    flow_id: Optional[str] = None


class TaskRunRef(BaseModel):
    """Identifying fields of a task run."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    namespace: str = Field(..., min_length=1)
    flow_id: str = Field(..., min_length=1)
    execution_id: str = Field(..., min_length=1)
    task_id: Optional[str] = None


class TriggerContextRef(BaseModel):
    """Identifying fields of a trigger evaluation context."""
    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    flow_id: str = Field(..., min_length=1)
    trigger_id: str = Field(..., min_length=1)
