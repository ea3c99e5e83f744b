"""
Deleter for classic load balancers.

The network interfaces of a balancer linger after the delete call, so the
deleter waits until the balancer no longer shows up before returning.
"""

import logging
from typing import List

from ..core.config import DeleteConfig
from ..core.resources import ResourceType
from .base import DeleteSummary, ResourceDeleter

logger = logging.getLogger(__name__)


class LoadBalancerDeleter(ResourceDeleter):
    resource_type = ResourceType.LOAD_BALANCER
    service_name = "elb"
    description = "ElasticLoadBalancing LoadBalancer"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = self._names()
        balancers = self._resolve(
            config, summary, lambda: self.lookup.elb.describe_load_balancers(names)
        )
        if balancers is None:
            return
        found = {b["LoadBalancerName"] for b in balancers}
        self._skip_missing(summary, found, names)

        deleting = []
        for name in names:
            if name in found and self._execute(
                config, summary, name, self.client.delete_load_balancer,
                record=False, LoadBalancerName=name,
            ):
                deleting.append(name)

        self._wait_for_deletion(config, summary, deleting, self._pending)

    def _pending(self, names: List[str]) -> List[str]:
        return [b["LoadBalancerName"] for b in self.lookup.elb.describe_load_balancers(names)]
