import logging
from typing import Dict, Iterable, List

from .errors import ClusterNotFound, HostNotFound
from .models import (
    ClusterContext,
    ClusterRecord,
    EvaluationContext,
    HostRecord,
    RunWarning,
    VmRecord,
)

logger = logging.getLogger(__name__)


class TopologyIndex:
    """Read-only host and cluster lookups shared by every VM of a run.

    Built once before evaluation starts; nothing mutates it afterwards, so
    worker threads can use it without locking.
    """

    def __init__(self, hosts: Iterable[HostRecord], clusters: Iterable[ClusterRecord]) -> None:
        self._hosts: Dict[str, HostRecord] = {}
        for host in hosts:
            # First match wins on duplicated ids
            self._hosts.setdefault(host.id, host)

        self._clusters: Dict[str, ClusterRecord] = {}
        for cluster in clusters:
            self._clusters.setdefault(cluster.id, cluster)

        self._cluster_contexts: Dict[str, ClusterContext] = {
            cluster_id: self._build_cluster_context(cluster)
            for cluster_id, cluster in self._clusters.items()
        }

    def _member_hosts(self, cluster: ClusterRecord) -> List[HostRecord]:
        listed = set(cluster.host_ids)
        return [
            host
            for host in self._hosts.values()
            if host.cluster_id == cluster.id or host.id in listed
        ]

    def _build_cluster_context(self, cluster: ClusterRecord) -> ClusterContext:
        members = self._member_hosts(cluster)
        if not members:
            logger.debug("Cluster %s has no known member hosts", cluster.name)
            return ClusterContext(id=cluster.id, name=cluster.name)
        return ClusterContext(
            id=cluster.id,
            name=cluster.name,
            min_memory_gb=min(host.memory_gb for host in members),
            min_sockets=min(host.sockets for host in members),
            min_cores_per_socket=min(host.cores_per_socket for host in members),
        )

    def resolve_host(self, vm: VmRecord) -> HostRecord:
        host = self._hosts.get(vm.host_id) if vm.host_id else None
        if host is None:
            raise HostNotFound(vm.name, vm.host_id)
        return host

    def resolve_cluster(self, host: HostRecord) -> ClusterContext:
        if not host.cluster_id:
            return ClusterContext.unclustered()
        context = self._cluster_contexts.get(host.cluster_id)
        if context is None:
            raise ClusterNotFound(host.name, host.cluster_id)
        return context

    def normalize(self, vm: VmRecord) -> EvaluationContext:
        host = self.resolve_host(vm)
        warnings: List[RunWarning] = []
        try:
            cluster = self.resolve_cluster(host)
        except ClusterNotFound as exc:
            logger.warning("%s; evaluating VM %s as unclustered", exc, vm.name)
            warnings.append(RunWarning(error_type=exc.error_type, message=str(exc)))
            cluster = ClusterContext.unclustered()
        return EvaluationContext(vm=vm, host=host, cluster=cluster, warnings=warnings)


def normalize(
    vm: VmRecord,
    hosts: Iterable[HostRecord],
    clusters: Iterable[ClusterRecord],
) -> EvaluationContext:
    return TopologyIndex(hosts, clusters).normalize(vm)
