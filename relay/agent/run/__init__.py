from relay.agent.run.result import RunResult, RunStatus
from relay.agent.run.state import Decision, Interruption, RunState

__all__ = ["RunResult", "RunStatus", "RunState", "Interruption", "Decision"]
