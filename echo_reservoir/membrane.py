"""
Membrane Computing (P-system) Layer

Implements:
- Typed, valued, charged objects held inside membranes
- Priority-ordered evolution rules with multiset matching
- Permeability/mobility driven transport between neighbouring membranes
- Complete binary membrane hierarchy with a flat registry
- Dissolution of saturated membranes into their parent

Key insight: each membrane is a tiny rewriting system. Rules consume
objects and produce new ones locally, then objects migrate up and down
the tree. Leaves end up holding the evolved signals.

The hierarchy has no internal synchronization. A single owner must
drive it sequentially or protect it with its own lock.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterator, List, Optional, Set

from .errors import InvalidParameter, MembraneNotFound, NilTarget

logger = logging.getLogger(__name__)


# Charged-object count above which a membrane should dissolve
DISSOLUTION_THRESHOLD = 10

# Transport happens when permeability * mobility (* charge boost) exceeds this
PASS_THRESHOLD = 0.5
CHARGE_BOOST = 1.2


@dataclass(frozen=True)
class MembraneObject:
    """
    Computational object inside a membrane.

    charge: +1 ham-leaning, -1 spam-leaning, 0 neutral.
    """
    type: str
    value: float = 0.0
    charge: int = 0
    mobility: float = 0.0


Transform = Callable[[List[MembraneObject]], List[MembraneObject]]


@dataclass
class EvolutionRule:
    """
    P-system evolution rule.

    input_types is a multiset: listing a type twice requires two
    distinct objects of that type. output_types is informational.
    """
    name: str
    priority: int = 0
    input_types: List[str] = field(default_factory=list)
    output_types: List[str] = field(default_factory=list)
    transform: Optional[Transform] = None

    def required(self) -> Counter:
        """Required count per object type"""
        return Counter(self.input_types)


def _spam_transform(objs: List[MembraneObject]) -> List[MembraneObject]:
    total = sum(obj.value for obj in objs if obj.charge < 0)
    return [MembraneObject(type="spam_score", value=total, charge=-1, mobility=0.8)]


def _ham_transform(objs: List[MembraneObject]) -> List[MembraneObject]:
    total = sum(obj.value for obj in objs if obj.charge > 0)
    return [MembraneObject(type="ham_score", value=total, charge=1, mobility=0.8)]


def _affective_transform(objs: List[MembraneObject]) -> List[MembraneObject]:
    # Boost emotional signals
    return [replace(obj, type="modulated_signal", value=obj.value * 1.1) for obj in objs]


def create_default_rules() -> List[EvolutionRule]:
    """Fresh copy of the default rule set for email processing."""
    return [
        EvolutionRule(
            name="spam_detection",
            priority=100,
            input_types=["token", "negative_signal"],
            output_types=["spam_score"],
            transform=_spam_transform,
        ),
        EvolutionRule(
            name="ham_detection",
            priority=100,
            input_types=["token", "positive_signal"],
            output_types=["ham_score"],
            transform=_ham_transform,
        ),
        EvolutionRule(
            name="affective_modulation",
            priority=50,
            input_types=["emotion_signal"],
            output_types=["modulated_signal"],
            transform=_affective_transform,
        ),
    ]


class Membrane:
    """
    A single membrane: objects, rules, and tree links.

    The parent reference is a back-link only. Lifetime of every
    membrane belongs to the hierarchy registry.
    """

    def __init__(self, id: str, level: int = 0, permeability: float = 1.0):
        self.id = id
        self.level = level
        self.permeability = permeability
        self.objects: List[MembraneObject] = []
        self.rules: List[EvolutionRule] = []
        self.parent: Optional['Membrane'] = None
        self.children: List['Membrane'] = []

    def add_child(self, child: 'Membrane') -> None:
        child.parent = self
        self.children.append(child)

    def add_object(self, obj: MembraneObject) -> None:
        self.objects.append(obj)

    def add_rule(self, rule: EvolutionRule) -> None:
        self.rules.append(rule)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def evolve(self) -> None:
        """
        One P-system computation step inside this membrane.

        Rules run by descending priority (ties keep insertion order).
        Each rule fires at most once per call on objects not already
        consumed by a higher-priority rule. Survivors keep their order
        and produced objects are appended after them.
        """
        ordered = sorted(self.rules, key=lambda r: -r.priority)

        consumed: Set[int] = set()
        produced: List[MembraneObject] = []

        for rule in ordered:
            match = self._find_match(rule, consumed)
            if match is None:
                continue

            consumed.update(match)
            if rule.transform is not None:
                produced.extend(rule.transform([self.objects[i] for i in match]))

        survivors = [obj for i, obj in enumerate(self.objects) if i not in consumed]
        self.objects = survivors + produced

    def _find_match(self, rule: EvolutionRule, consumed: Set[int]) -> Optional[List[int]]:
        """First complete match for the rule, as object indices in scan order"""
        needed = rule.required()
        if not needed:
            return None

        remaining = sum(needed.values())
        match: List[int] = []
        for i, obj in enumerate(self.objects):
            if i in consumed or needed[obj.type] <= 0:
                continue
            match.append(i)
            needed[obj.type] -= 1
            remaining -= 1
            if remaining == 0:
                return match

        return None

    def pass_objects(self, target: Optional['Membrane']) -> int:
        """
        Move sufficiently mobile objects into target.

        The decision is a fixed threshold, not a draw: identical inputs
        always give identical results. Returns the number moved.
        """
        if target is None:
            raise NilTarget(f"membrane {self.id}: target membrane is None")

        remaining: List[MembraneObject] = []
        moved = 0
        for obj in list(self.objects):
            pass_prob = self.permeability * obj.mobility
            if obj.charge != 0:
                # Charged objects are more likely to move
                pass_prob *= CHARGE_BOOST

            if pass_prob > PASS_THRESHOLD:
                target.add_object(obj)
                moved += 1
            else:
                remaining.append(obj)

        self.objects = remaining
        return moved

    def compute_dissolution(self) -> bool:
        """True if the membrane holds too many charged objects."""
        charged = sum(1 for obj in self.objects if obj.charge != 0)
        return charged > DISSOLUTION_THRESHOLD

    def __repr__(self) -> str:
        return (f"Membrane(id={self.id!r}, level={self.level}, "
                f"permeability={self.permeability:.2f}, objects={len(self.objects)})")


class MembraneHierarchy:
    """
    Complete binary tree of membranes.

    The registry lists every membrane reachable from root, in creation
    (depth-first) order. System steps and result collection walk the
    registry, not the tree.
    """

    def __init__(
        self,
        depth: int = 3,
        permeability: Optional[float] = None,
        with_rules: bool = True
    ):
        """
        Args:
            depth: number of levels including root (0 and 1 both give a lone root)
            permeability: fixed permeability for every non-root membrane;
                default is 0.5 + 0.1 * level
            with_rules: give every non-root membrane the default rule set
        """
        if depth < 0:
            raise InvalidParameter(f"hierarchy depth must be >= 0, got {depth}")

        self.depth = depth
        self.fixed_permeability = permeability
        self.root = Membrane("root", 0, 1.0)
        self.membranes: List[Membrane] = [self.root]
        self.step_count = 0

        self._build(self.root, depth, 1, with_rules)

        logger.debug("membrane hierarchy built: depth=%d membranes=%d",
                     depth, len(self.membranes))

    def _permeability_for(self, level: int) -> float:
        if self.fixed_permeability is not None:
            return self.fixed_permeability
        # Deeper = more permeable
        return 0.5 + 0.1 * level

    def _build(
        self,
        parent: Membrane,
        max_depth: int,
        level: int,
        with_rules: bool
    ) -> None:
        if level >= max_depth:
            return

        for i in range(2):
            child = Membrane(f"{parent.id}_{i}", level, self._permeability_for(level))
            parent.add_child(child)
            self.membranes.append(child)

            if with_rules:
                for rule in create_default_rules():
                    child.add_rule(rule)

            self._build(child, max_depth, level + 1, with_rules)

    def __len__(self) -> int:
        return len(self.membranes)

    def __iter__(self) -> Iterator[Membrane]:
        return iter(self.membranes)

    def get(self, membrane_id: str) -> Membrane:
        for membrane in self.membranes:
            if membrane.id == membrane_id:
                return membrane
        raise MembraneNotFound(f"membrane {membrane_id} not found")

    def leaves(self) -> List[Membrane]:
        return [m for m in self.membranes if m.is_leaf]

    def inject_object(self, membrane_id: str, obj: MembraneObject) -> None:
        """Append an object to the named membrane."""
        self.get(membrane_id).add_object(obj)

    def system_step(self) -> None:
        """
        One step of the whole system.

        Every membrane evolves before any transport happens. Transport
        then runs in registry order, parent first, then each child, each
        pass seeing the lists already changed by earlier passes.
        """
        for membrane in self.membranes:
            membrane.evolve()

        for membrane in self.membranes:
            if membrane.parent is not None:
                membrane.pass_objects(membrane.parent)
            for child in membrane.children:
                membrane.pass_objects(child)

        self.step_count += 1

    def run(self, steps: int) -> None:
        for _ in range(steps):
            self.system_step()

    def collect_results(self) -> List[MembraneObject]:
        """Objects of every leaf membrane, in registry order."""
        results: List[MembraneObject] = []
        for membrane in self.membranes:
            if membrane.is_leaf:
                results.extend(membrane.objects)
        return results

    # =========================================================================
    # DISSOLUTION
    # =========================================================================

    def dissolve(self, membrane_id: str) -> None:
        """
        Dissolve a membrane into its parent.

        Objects move to the parent, children are re-attached to the
        parent in the dissolved membrane's place, and the membrane
        leaves the registry. Promoted membranes take the level and
        permeability of their new depth.
        """
        membrane = self.get(membrane_id)
        parent = membrane.parent
        if parent is None:
            raise InvalidParameter("root membrane cannot dissolve")

        parent.objects.extend(membrane.objects)
        membrane.objects = []

        pos = parent.children.index(membrane)
        parent.children[pos:pos + 1] = membrane.children
        for child in membrane.children:
            child.parent = parent
            self._relevel(child, parent.level + 1)

        membrane.children = []
        membrane.parent = None
        self.membranes.remove(membrane)

        logger.debug("membrane %s dissolved into %s", membrane_id, parent.id)

    def _relevel(self, membrane: Membrane, level: int) -> None:
        membrane.level = level
        membrane.permeability = self._permeability_for(level)
        for child in membrane.children:
            self._relevel(child, level + 1)

    def dissolve_saturated(self) -> List[str]:
        """Dissolve every non-root membrane whose dissolution predicate holds."""
        dissolved = []
        for membrane in list(self.membranes):
            if membrane.parent is not None and membrane.compute_dissolution():
                self.dissolve(membrane.id)
                dissolved.append(membrane.id)
        return dissolved

    def get_stats(self) -> Dict:
        """Get hierarchy statistics"""
        return {
            'depth': self.depth,
            'step_count': self.step_count,
            'n_membranes': len(self.membranes),
            'n_leaves': len(self.leaves()),
            'n_objects': sum(len(m.objects) for m in self.membranes),
        }
