"""Runtime target selection."""

from typing import Optional, Union

from arkctl.modules.api import K8sTarget, LocalTarget


def select_runtime_target(port: int, pod: Optional[str] = None) -> Union[LocalTarget, K8sTarget]:
    """
    Pick the container the biz is deployed to.

    A pod coordinate selects the Kubernetes variant; anything else is a local
    process. The coordinate is not validated here.
    """
    if pod:
        return K8sTarget(coordinate=pod, port=port)
    return LocalTarget(port=port)
