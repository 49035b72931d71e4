#!/usr/bin/env python3
"""
Web server for the visual agent builder.

Provides REST API and WebSocket support for real-time workflow execution.
"""
import asyncio
import logging
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field
import uvicorn

from agent_builder import __version__
from agent_builder.engine.context import ExecutionContext
from agent_builder.engine.data import LogType, summarize
from agent_builder.engine.executor import WorkflowExecutor
from agent_builder.errors import WorkflowError
from agent_builder.nodes.registry import get_registry
from agent_builder.utils.config import get_config_manager
from agent_builder.workflows.serialization import WorkflowSerializer, validate_workflow

logger = logging.getLogger(__name__)

app = FastAPI(title="Visual Agent Builder", version=__version__)


class WorkflowRequest(BaseModel):
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)


def _decode(workflow_data: Dict[str, Any]):
    try:
        return WorkflowSerializer().deserialize_workflow(workflow_data)
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _run_payload(executor: WorkflowExecutor, results) -> Dict[str, Any]:
    return {
        **summarize(results).to_dict(),
        "results": {node_id: result.to_dict() for node_id, result in results.items()},
        "logs": [entry.to_dict() for entry in executor.get_execution_log()],
    }


@app.get("/api/nodes")
async def list_nodes():
    """Get all available node types"""
    return {"nodes": get_registry().describe()}


@app.post("/api/workflow/validate")
async def validate_workflow_endpoint(request: WorkflowRequest):
    """Validate a workflow"""
    document = _decode({"nodes": request.nodes, "edges": request.edges})
    allow_cycles = get_config_manager().load().engine.allow_cycles
    errors = validate_workflow(document.nodes, document.edges, allow_cycles=allow_cycles)
    return {
        "valid": len(errors) == 0,
        "errors": errors
    }


@app.post("/api/workflow/execute")
def execute_workflow(request: WorkflowRequest):
    """Execute a workflow synchronously"""
    document = _decode({"nodes": request.nodes, "edges": request.edges})
    try:
        context = ExecutionContext.from_dict(request.context, config=get_config_manager().load())
        executor = WorkflowExecutor()
        results = executor.execute_workflow(document.nodes, document.edges, context)
    except WorkflowError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Workflow execution failed")
        raise HTTPException(status_code=500, detail=str(e))
    return _run_payload(executor, results)


# WebSocket for real-time execution updates
class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)


manager = ConnectionManager()


async def stream_execution(websocket: WebSocket, workflow_data: Dict[str, Any],
                           context_data: Dict[str, Any]):
    """
    Run a workflow in a worker thread, relaying each log entry as it is
    emitted and finishing with an ``execution_complete`` message.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def relay(message: str, log_type: LogType):
        loop.call_soon_threadsafe(queue.put_nowait, {
            "type": "log",
            "message": message,
            "log_type": log_type.value,
        })

    document = WorkflowSerializer().deserialize_workflow(workflow_data)
    context = ExecutionContext.from_dict(context_data, on_log=relay,
                                         config=get_config_manager().load())
    executor = WorkflowExecutor()

    def run():
        try:
            return executor.execute_workflow(document.nodes, document.edges, context)
        finally:
            loop.call_soon_threadsafe(queue.put_nowait, None)

    future = loop.run_in_executor(None, run)
    await websocket.send_json({
        "type": "execution_started",
        "total_nodes": len(document.nodes)
    })
    while True:
        message = await queue.get()
        if message is None:
            break
        await websocket.send_json(message)

    results = await future
    await websocket.send_json({"type": "execution_complete", **_run_payload(executor, results)})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time updates"""
    await manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_json()

            if not isinstance(data, dict) or data.get("type") != "execute":
                await websocket.send_json({"type": "error", "message": "Unsupported message"})
                continue

            try:
                await stream_execution(websocket, data.get("workflow") or {},
                                       data.get("context") or {})
            except WorkflowError as e:
                await websocket.send_json({"type": "error", "message": str(e)})
            except Exception as e:
                logger.exception("Workflow execution failed")
                await websocket.send_json({"type": "error", "message": str(e) or type(e).__name__})

    except WebSocketDisconnect:
        manager.disconnect(websocket)


def main():
    """Run the web server"""
    import argparse
    parser = argparse.ArgumentParser(description="Visual Agent Builder API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    uvicorn.run(
        "agent_builder.web.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
