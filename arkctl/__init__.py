"""
arkctl - Deploy biz modules to running ark containers

Builds a biz bundle, then swaps it into an ark container running either
as a local process or inside a Kubernetes pod.

Architecture:
- Each module is self-contained with clear interfaces
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- api: Shared models, errors and the runtime service protocol
- context: Execution context threaded through every stage
- executor: External command runner with live output
- bundle: Bundle lookup and manifest parsing
- ark: Runtime target selection and the arklet client
- pipeline: Deploy stages and the fail-fast driver
"""

__version__ = "1.0.0"
