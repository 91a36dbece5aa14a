"""
Net name registry.

Assigns small integer ids to net names in first-seen order. Id 0 is always
the unconnected sentinel.
"""

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from mutcap_constants import UNCONNECTED_NET_NAME


class NetRegistry:
    """Bijective net name <-> id map with a reserved unconnected id."""

    def __init__(self, unconnected_name: str = UNCONNECTED_NET_NAME):
        self._name_to_id: Dict[str, int] = {}
        self._id_to_name: List[str] = []
        self.unconnected_id = self.register(unconnected_name)

    def register(self, name: str) -> int:
        """Return the id of name, assigning the next free id on first sight."""
        net_id = self._name_to_id.get(name)
        if net_id is None:
            net_id = len(self._id_to_name)
            self._name_to_id[name] = net_id
            self._id_to_name.append(name)
        return net_id

    def find_id(self, name: str) -> Optional[int]:
        return self._name_to_id.get(name)

    def find_name(self, net_id: int) -> Optional[str]:
        if 0 <= net_id < len(self._id_to_name):
            return self._id_to_name[net_id]
        return None

    def resolve(self, name: Optional[str]) -> int:
        """Id of a component's net name; unnamed components are unconnected."""
        if name is None:
            return self.unconnected_id
        net_id = self._name_to_id.get(name)
        return self.unconnected_id if net_id is None else net_id

    def items(self) -> Iterator[Tuple[int, str]]:
        """(id, name) pairs in registration order."""
        return iter(enumerate(self._id_to_name))

    def __len__(self) -> int:
        return len(self._id_to_name)

    def __contains__(self, name: str) -> bool:
        return name in self._name_to_id


def register_component_nets(registry: NetRegistry,
                            component_names_per_layer: Sequence[Sequence[Optional[str]]]) -> None:
    """Register every named component, layer by layer, component by component."""
    for names in component_names_per_layer:
        for name in names:
            if name is not None:
                registry.register(name)
