"""
Tests for the workflow graph executor.
"""
import asyncio
import os
import pytest

from services.executor import (
    ExecuteRequest,
    NodeStatus,
    RunStatus,
    WorkflowExecutor,
    WorkflowGraphError,
    WorkflowNode,
    WorkflowEdge,
    build_adjacency,
    execute_workflow_sync,
    find_cycle,
    find_start_nodes,
)
from services.executor.shell import run_shell_command


def shell(node_id, *commands, label=None, **data):
    node_data = {"commands": list(commands), **data}
    if label:
        node_data["label"] = label
    return {"id": node_id, "type": "shell", "data": node_data}


def trigger(node_id="trigger"):
    return {"id": node_id, "type": "trigger", "data": {"triggerType": "manual"}}


def edge(source, target):
    return {"id": f"{source}-{target}", "source": source, "target": target}


class TestGraphHelpers:
    """Test start node selection, adjacency and cycle detection."""

    def test_trigger_nodes_are_preferred(self):
        """Test that explicit trigger nodes win over graph sources."""
        nodes = [WorkflowNode(id="a", type="shell"), WorkflowNode(id="t", type="trigger")]
        assert find_start_nodes(nodes, []) == ["t"]

    def test_node_type_in_data_counts(self):
        """Test that data.nodeType marks a trigger too."""
        nodes = [
            WorkflowNode(id="a", type="custom", data={"nodeType": "trigger"}),
            WorkflowNode(id="b", type="shell"),
        ]
        assert find_start_nodes(nodes, []) == ["a"]

    def test_sources_without_trigger(self):
        """Test fallback to nodes with no incoming edge."""
        nodes = [WorkflowNode(id=n, type="shell") for n in ("a", "b", "c")]
        edges = [WorkflowEdge(source="a", target="c")]
        assert find_start_nodes(nodes, edges) == ["a", "b"]

    def test_adjacency_keeps_edge_order(self):
        """Test adjacency list construction."""
        edges = [WorkflowEdge(source="a", target="c"), WorkflowEdge(source="a", target="b")]
        assert build_adjacency(edges) == {"a": ["c", "b"]}

    def test_find_cycle(self):
        """Test that a reachable cycle is reported with its path."""
        adjacency = {"t": ["a"], "a": ["b"], "b": ["a"]}
        assert find_cycle(["t"], adjacency) == ["a", "b", "a"]

    def test_diamond_is_not_a_cycle(self):
        """Test that converging branches are acyclic."""
        adjacency = {"t": ["a", "b"], "a": ["c"], "b": ["c"]}
        assert find_cycle(["t"], adjacency) is None

    def test_unreachable_cycle_is_ignored(self):
        """Test that only cycles reachable from the start set count."""
        adjacency = {"t": ["a"], "x": ["y"], "y": ["x"]}
        assert find_cycle(["t"], adjacency) is None


class TestWorkflowExecution:
    """Test running workflow graphs end to end."""

    @pytest.mark.asyncio
    async def test_failure_stops_traversal(self, executor, tmp_path):
        """Test trigger -> A (fails) -> B: B never runs."""
        request = ExecuteRequest(
            nodes=[trigger(), shell("a", "exit 1"), shell("b", "echo never")],
            edges=[edge("trigger", "a"), edge("a", "b")],
            root_directory=str(tmp_path),
        )

        response = await executor.execute(request)

        assert response.success is False
        assert response.status == RunStatus.FAILED
        assert response.execution_order == ["trigger", "a"]
        assert [r.node_id for r in response.results] == ["trigger", "a"]
        failed = response.failed_result()
        assert failed.node_id == "a"
        assert failed.exit_code == 1
        assert failed.error == "Command failed with exit code 1"

    @pytest.mark.asyncio
    async def test_outputs_flow_through_templates(self, executor, sample_workflow_nodes, sample_workflow_edges, tmp_path):
        """Test that a downstream command sees the cleaned upstream output."""
        response = await executor.execute({
            "nodes": sample_workflow_nodes,
            "edges": sample_workflow_edges,
            "rootDirectory": str(tmp_path),
        })

        assert response.success is True
        assert response.status == RunStatus.COMPLETED
        assert response.execution_order == ["trigger", "greet", "shout"]
        assert response.results[0].output == "Trigger activated"
        assert response.results[2].output == "$ echo hello world\nhello world"

    @pytest.mark.asyncio
    async def test_label_references(self, executor, tmp_path):
        """Test resolving a reference by normalized label."""
        response = await executor.execute({
            "nodes": [
                trigger(),
                shell("n1", "echo 42", label="Compute Answer"),
                shell("n2", "echo answer={{ compute_answer.output }}"),
            ],
            "edges": [edge("trigger", "n1"), edge("n1", "n2")],
            "rootDirectory": str(tmp_path),
        })

        assert response.results[-1].output.endswith("answer=42")

    @pytest.mark.asyncio
    async def test_unresolved_reference_left_verbatim(self, executor, tmp_path):
        """Test that unknown references pass through unchanged."""
        response = await executor.execute({
            "nodes": [trigger(), shell("n1", "echo '{{ missing.output }}'")],
            "edges": [edge("trigger", "n1")],
            "rootDirectory": str(tmp_path),
        })

        assert response.success is True
        assert response.results[-1].output.endswith("{{ missing.output }}")

    @pytest.mark.asyncio
    async def test_cycle_is_rejected_before_running(self, executor, tmp_path):
        """Test that a cyclic graph raises and runs nothing."""
        marker = tmp_path / "ran"
        request = {
            "nodes": [trigger(), shell("a", f"touch {marker}"), shell("b", "echo b")],
            "edges": [edge("trigger", "a"), edge("a", "b"), edge("b", "a")],
            "rootDirectory": str(tmp_path),
        }

        with pytest.raises(WorkflowGraphError) as exc_info:
            await executor.execute(request)

        assert exc_info.value.cycle == ["a", "b", "a"]
        assert not marker.exists()

    @pytest.mark.asyncio
    async def test_unknown_start_node(self, executor):
        """Test that an explicit start node must exist."""
        with pytest.raises(WorkflowGraphError):
            await executor.execute({"nodes": [trigger()], "startNodeId": "nope"})

    @pytest.mark.asyncio
    async def test_no_start_nodes(self, executor):
        """Test a graph where every node has an incoming edge."""
        with pytest.raises(WorkflowGraphError):
            await executor.execute({
                "nodes": [shell("a"), shell("b")],
                "edges": [edge("a", "b"), edge("b", "a")],
            })

    @pytest.mark.asyncio
    async def test_explicit_start_node(self, executor, tmp_path):
        """Test starting from one trigger of several."""
        response = await executor.execute({
            "nodes": [trigger("t1"), trigger("t2"), shell("a", "echo a"), shell("b", "echo b")],
            "edges": [edge("t1", "a"), edge("t2", "b")],
            "rootDirectory": str(tmp_path),
            "startNodeId": "t2",
        })

        assert response.execution_order == ["t2", "b"]

    @pytest.mark.asyncio
    async def test_diamond_runs_join_once(self, executor, tmp_path):
        """Test breadth-first order and that a join node runs once."""
        response = await executor.execute({
            "nodes": [trigger(), shell("a", "echo a"), shell("b", "echo b"), shell("c", "echo c")],
            "edges": [edge("trigger", "a"), edge("trigger", "b"), edge("a", "c"), edge("b", "c")],
            "rootDirectory": str(tmp_path),
        })

        assert response.execution_order == ["trigger", "a", "b", "c"]

    @pytest.mark.asyncio
    async def test_edges_to_unknown_nodes_are_ignored(self, executor, tmp_path):
        """Test that dangling edges do not break execution."""
        response = await executor.execute({
            "nodes": [trigger(), shell("a", "echo a")],
            "edges": [edge("trigger", "ghost"), edge("trigger", "a")],
            "rootDirectory": str(tmp_path),
        })

        assert response.success is True
        assert response.execution_order == ["trigger", "a"]


class TestNodeTypes:
    """Test how each node type executes."""

    @pytest.mark.asyncio
    async def test_shell_stops_at_first_failing_command(self, executor, tmp_path):
        """Test accumulated output and exit code on failure."""
        node = WorkflowNode(**shell("a", "echo first", "exit 3", "echo never"))

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.FAILED
        assert result.exit_code == 3
        assert "first" in result.output
        assert "never" not in result.output
        assert result.start_time <= result.end_time

    @pytest.mark.asyncio
    async def test_shell_captures_stderr(self, executor, tmp_path):
        """Test that stderr is appended to stdout."""
        node = WorkflowNode(**shell("a", "echo out; echo err 1>&2"))

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.COMPLETED
        assert result.output.startswith("$ echo out; echo err 1>&2\nout")
        assert result.output.endswith("[stderr]\nerr")

    @pytest.mark.asyncio
    async def test_shell_relative_path(self, executor, tmp_path):
        """Test that a relative node path resolves against the root directory."""
        (tmp_path / "sub").mkdir()
        node = WorkflowNode(**shell("a", "pwd", path="sub"))

        result = await executor.execute_node(node, str(tmp_path))

        assert os.path.realpath(result.output.splitlines()[-1]) == os.path.realpath(tmp_path / "sub")

    @pytest.mark.asyncio
    async def test_shell_without_commands(self, executor, tmp_path):
        """Test an empty shell node."""
        result = await executor.execute_node(WorkflowNode(**shell("a")), str(tmp_path))
        assert result.status == NodeStatus.COMPLETED
        assert result.output == "(no commands to execute)"

    @pytest.mark.asyncio
    async def test_missing_directory_fails_node(self, executor, tmp_path):
        """Test that a nonexistent working directory fails the node."""
        node = WorkflowNode(**shell("a", "echo hi", path="does-not-exist"))

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.FAILED
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_script_node(self, executor, tmp_path):
        """Test running a shell script file with arguments."""
        (tmp_path / "hello.sh").write_text('echo "script $1"\n')
        node = WorkflowNode(
            id="s",
            type="script",
            data={"scriptFiles": ["hello.sh"], "args": ["arg"]},
        )

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.COMPLETED
        assert result.output.endswith("script arg")

    @pytest.mark.asyncio
    async def test_script_failure(self, executor, tmp_path):
        """Test that a failing script fails the node."""
        (tmp_path / "fail.sh").write_text("exit 4\n")
        node = WorkflowNode(id="s", type="script", data={"scriptFiles": ["fail.sh"]})

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.FAILED
        assert result.exit_code == 4

    @pytest.mark.asyncio
    async def test_workdir_node(self, executor, tmp_path):
        """Test the context-only workdir node."""
        node = WorkflowNode(id="w", type="workdir", data={"path": "/srv/app"})
        result = await executor.execute_node(node, str(tmp_path))
        assert result.output == "Working directory: /srv/app"

        empty = await executor.execute_node(WorkflowNode(id="w", type="workdir"), str(tmp_path))
        assert empty.output == "Working directory: (not set)"

    @pytest.mark.asyncio
    async def test_unknown_node_type(self, executor, tmp_path):
        """Test that unknown types complete with a placeholder."""
        node = WorkflowNode(id="x", type="agent", data={"prompt": "hi"})

        result = await executor.execute_node(node, str(tmp_path))

        assert result.status == NodeStatus.COMPLETED
        assert result.output == "Node type 'agent' execution not yet implemented"

    @pytest.mark.asyncio
    async def test_trigger_with_bad_data_still_passes(self, executor, tmp_path):
        """Test that trigger nodes pass through regardless of their data."""
        node = WorkflowNode(id="t", type="trigger", data={"triggerType": "webhook"})
        result = await executor.execute_node(node, str(tmp_path))
        assert result.status == NodeStatus.COMPLETED


class TestSyncWrapper:
    """Test the synchronous convenience wrapper."""

    def test_execute_workflow_sync(self, tmp_path):
        """Test running a workflow outside an event loop."""
        response = execute_workflow_sync(
            nodes=[trigger(), shell("a", "echo sync")],
            edges=[edge("trigger", "a")],
            root_directory=str(tmp_path),
        )

        assert response.success is True
        assert response.results[-1].output == "$ echo sync\nsync"


class TestShellCancellation:
    """Test that cancelled runs do not leave processes behind."""

    @pytest.mark.asyncio
    async def test_cancel_kills_process(self, tmp_path):
        """Test that cancelling a running command kills its process."""
        pid_file = tmp_path / "pid"
        task = asyncio.create_task(
            run_shell_command("echo $$ > pid.tmp && mv pid.tmp pid && exec sleep 30", str(tmp_path))
        )
        for _ in range(200):
            if pid_file.exists():
                break
            await asyncio.sleep(0.05)
        pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)
