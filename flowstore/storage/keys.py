"""
Key Derivation - Storage Layer

Pure functions building the logical keys under which the engine stores
execution outputs, task caches, persisted state and inputs. No filesystem
access happens here.

Each layout rule has exactly one implementation taking primitive fields.
The ``*_for*`` adapters only pull those fields off whichever entity the
caller holds (flow, execution, task run, trigger context) and delegate.

Layout:
    /{ns}/{flow}/executions/{execution}                                 execution prefix
    {ns}/{flow}/{task}/cache[/{value-hash}]                             cache prefix
    {ns}/{flow}/states/{name}[/{value-hash}]                            state prefix
    ///{ns}/{flow}                                                      flow outputs
    ///{ns}/{flow}/executions/{execution}/tasks/{task}/{task-run}       task run outputs
    ///{ns}/{flow}/executions/{execution}/trigger/{trigger}             trigger outputs
    ///{ns}/{flow}/executions/{execution}/inputs/{input}                execution inputs

Namespaces are dotted and map to nested directories (``io.team`` ->
``io/team``); flow and task ids are slugified. The ``///`` prefix is an
empty-authority URI and is part of the key. An id that slugifies to nothing
or a namespace with an empty segment raises ValueError, so distinct inputs
never collapse onto one key.

@.architecture
Incoming: Engine callers --- {namespace, flow id, execution id, task id, task run id, trigger id, entity objects}
Processing: execution_prefix(), cache_prefix(), state_prefix(), output_prefix(), input_prefix() + entity adapters --- {2 jobs: key_formatting, field_extraction}
Outgoing: storage/local.py callers --- {str prefix keys and logical URIs}
"""

from typing import Any, Optional

from flowstore.utils.hashing import value_hash
from flowstore.utils.text import slugify

OUTPUT_URI_PREFIX = "///"


def _require(value: Optional[str], field: str) -> str:
    if value is None or str(value) == "":
        raise ValueError(f"{field} is required to build a storage key")
    return str(value)


def _slug(value: Optional[str], field: str) -> str:
    slug = slugify(_require(value, field))
    if not slug:
        raise ValueError(f"{field} {value!r} has no characters usable in a storage key")
    return slug


def namespace_path(namespace: str) -> str:
    """
    Convert a dotted namespace to its path form.

    Raises:
        ValueError: If the namespace is missing or has an empty segment
            (``a..b``, ``.a``, ``a.``)
    """
    segments = _require(namespace, "namespace").split(".")
    if not all(segments):
        raise ValueError(f"Namespace {namespace!r} has an empty segment")
    return "/".join(segments)


def _value_suffix(value: Optional[str]) -> str:
    return "" if value is None else "/" + value_hash(value)


def _flow_root(namespace: str, flow_id: str) -> str:
    return namespace_path(namespace) + "/" + _slug(flow_id, "flow_id")


# =============================================================================
# Canonical rules
# =============================================================================

def execution_prefix(namespace: str, flow_id: str, execution_id: str) -> str:
    """
    Build the storage prefix of an execution.

    Returns:
        ``/{namespace}/{flow_id}/executions/{execution_id}``
    """
    return "/" + _flow_root(namespace, flow_id) + "/executions/" + _require(execution_id, "execution_id")


def cache_prefix(namespace: str, flow_id: str, task_id: str, value: Optional[str] = None) -> str:
    """
    Build the cache prefix of a task.

    A non-null ``value`` appends a stable hash of it, so each distinct value
    gets its own cache slot.

    Returns:
        ``{namespace}/{flow_id}/{task_id}/cache[/{hash}]``
    """
    task = _slug(task_id, "task_id")
    return _flow_root(namespace, flow_id) + "/" + task + "/cache" + _value_suffix(value)


def state_prefix(namespace: str, flow_id: str, name: str, value: Optional[str] = None) -> str:
    """
    Build the prefix of a named persisted state.

    Returns:
        ``{namespace}/{flow_id}/states/{name}[/{hash}]``
    """
    return _flow_root(namespace, flow_id) + "/states/" + _require(name, "name") + _value_suffix(value)


def output_prefix(
    namespace: str,
    flow_id: str,
    execution_id: Optional[str] = None,
    task_id: Optional[str] = None,
    task_run_id: Optional[str] = None,
    trigger_id: Optional[str] = None,
) -> str:
    """
    Build the output root of a flow, an execution, a task run or a trigger.

    Args:
        namespace: Flow namespace
        flow_id: Flow id
        execution_id: Execution id (required for every form but the flow root)
        task_id: Task id, together with ``task_run_id``
        task_run_id: Task run id, together with ``task_id``
        trigger_id: Trigger id, exclusive with the task fields

    Returns:
        Output prefix starting with ``///``

    Raises:
        ValueError: On an inconsistent field combination
    """
    prefix = OUTPUT_URI_PREFIX + _flow_root(namespace, flow_id)

    has_task = task_id is not None or task_run_id is not None
    if execution_id is None:
        if has_task or trigger_id is not None:
            raise ValueError("execution_id is required for task run and trigger outputs")
        return prefix

    prefix += "/executions/" + _require(execution_id, "execution_id")

    if trigger_id is not None:
        if has_task:
            raise ValueError("trigger outputs cannot also reference a task run")
        return prefix + "/trigger/" + _require(trigger_id, "trigger_id")

    if has_task:
        task = _slug(task_id, "task_id")
        return prefix + "/tasks/" + task + "/" + _require(task_run_id, "task_run_id")

    return prefix


def input_prefix(namespace: str, flow_id: str, execution_id: str, input_id: str) -> str:
    """
    Build the location of an execution input file.

    Returns:
        ``///{namespace}/{flow_id}/executions/{execution_id}/inputs/{input_id}``
    """
    return output_prefix(namespace, flow_id, execution_id) + "/inputs/" + _require(input_id, "input_id")


# =============================================================================
# Entity adapters
# =============================================================================

def execution_prefix_for(execution: Any) -> str:
    """Execution prefix from an execution carrying namespace and flow id."""
    return execution_prefix(execution.namespace, execution.flow_id, execution.id)


def execution_prefix_for_flow(flow: Any, execution: Any) -> str:
    """Execution prefix from a flow and one of its executions."""
    return execution_prefix(flow.namespace, flow.id, execution.id)


def execution_prefix_for_task_run(task_run: Any) -> str:
    """Execution prefix of the execution a task run belongs to."""
    return execution_prefix(task_run.namespace, task_run.flow_id, task_run.execution_id)


def output_prefix_for_flow(flow: Any) -> str:
    """Output root of a flow."""
    return output_prefix(flow.namespace, flow.id)


def output_prefix_for_task_run(flow: Any, execution: Any, task_run: Any) -> str:
    """Output root of a task run."""
    return output_prefix(
        flow.namespace,
        flow.id,
        execution_id=execution.id,
        task_id=task_run.task_id,
        task_run_id=task_run.id,
    )


def output_prefix_for_trigger(trigger_context: Any, execution_id: str) -> str:
    """Output root of a trigger evaluation."""
    return output_prefix(
        trigger_context.namespace,
        trigger_context.flow_id,
        execution_id=execution_id,
        trigger_id=trigger_context.trigger_id,
    )
