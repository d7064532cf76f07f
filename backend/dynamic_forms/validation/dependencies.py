"""
Dependency graph builder

Derives, from every condition in a FormSpec, which fields have to be re-checked when
another field's value changes. The graph is built once per FormSpec and never mutated;
a different FormSpec always gets a fresh graph.
"""
import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from .types import ColumnSpec, ConditionSpec, FormSpec

logger = logging.getLogger(__name__)

Edges = Mapping[str, FrozenSet[str]]


def _freeze(edges: Dict[str, Set[str]]) -> Edges:
    return MappingProxyType({key: frozenset(values) for key, values in edges.items()})


def _freeze_nested(edges: Dict[str, Dict[str, Set[str]]]) -> Mapping[str, Edges]:
    return MappingProxyType({key: _freeze(inner) for key, inner in edges.items()})


def _thaw(edges: Edges) -> Dict[str, List[str]]:
    return {key: sorted(values) for key, values in edges.items()}


@dataclass(frozen=True)
class DependencyGraph:
    """
    referencedField -> dependents, split by the context the reference lives in

    form_level:      form field -> form fields whose conditional rules read it
    tables:          table field -> column -> columns in the same row whose rules read it
    datagrids:       datagrid field -> column -> columns in the same row whose rules read it
    cross_structure: form field -> table/datagrid fields whose row rules read it via $form.
    visible_fields / visible_sections / visible_pages:
                     form field -> field names / section ids / page ids whose visibility reads it

    The same-row maps serve cell-level callers (row_dependents_of and the
    /api/forms/dependencies/ payload). FormSession re-walks a whole table or
    datagrid when its value changes, so it only follows form-level and
    cross-structure edges.
    """
    form_id: str
    form_level: Edges = field(default_factory=lambda: _freeze({}))
    tables: Mapping[str, Edges] = field(default_factory=lambda: _freeze_nested({}))
    datagrids: Mapping[str, Edges] = field(default_factory=lambda: _freeze_nested({}))
    cross_structure: Edges = field(default_factory=lambda: _freeze({}))
    visible_fields: Edges = field(default_factory=lambda: _freeze({}))
    visible_sections: Edges = field(default_factory=lambda: _freeze({}))
    visible_pages: Edges = field(default_factory=lambda: _freeze({}))

    # id(spec) -> (spec, graph); the FormSpec is kept so a recycled id never hits
    _cache: ClassVar['OrderedDict[int, Tuple[FormSpec, DependencyGraph]]'] = OrderedDict()
    _cache_size: ClassVar[int] = 64

    @classmethod
    def for_spec(cls, spec: FormSpec) -> 'DependencyGraph':
        """Cached graph for this exact FormSpec object; any other object gets a fresh build"""
        key = id(spec)
        cached = cls._cache.get(key)
        if cached is not None and cached[0] is spec:
            cls._cache.move_to_end(key)
            return cached[1]

        graph = build_dependencies(spec)
        cls._cache[key] = (spec, graph)
        while len(cls._cache) > cls._cache_size:
            cls._cache.popitem(last=False)
        return graph

    def dependents_of(self, field_name: str) -> FrozenSet[str]:
        """Form-level fields (including whole tables/datagrids) to re-validate when field_name changes"""
        return self.form_level.get(field_name, frozenset()) | self.cross_structure.get(field_name, frozenset())

    def row_dependents_of(self, structure_name: str, column_name: str) -> FrozenSet[str]:
        """Columns in the same row to re-validate when column_name changes inside structure_name"""
        edges = self.tables.get(structure_name) or self.datagrids.get(structure_name) or {}
        return edges.get(column_name, frozenset())

    def visibility_dependents_of(self, field_name: str) -> Dict[str, FrozenSet[str]]:
        return {
            'fields': self.visible_fields.get(field_name, frozenset()),
            'sections': self.visible_sections.get(field_name, frozenset()),
            'pages': self.visible_pages.get(field_name, frozenset()),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'formId': self.form_id,
            'formLevel': _thaw(self.form_level),
            'tables': {name: _thaw(edges) for name, edges in self.tables.items()},
            'datagrids': {name: _thaw(edges) for name, edges in self.datagrids.items()},
            'crossStructure': _thaw(self.cross_structure),
            'visibility': {
                'fields': _thaw(self.visible_fields),
                'sections': _thaw(self.visible_sections),
                'pages': _thaw(self.visible_pages),
            },
        }


def _add_column_edges(columns: List[ColumnSpec], structure_name: str,
                      row_edges: Dict[str, Set[str]], cross: Dict[str, Set[str]]):
    for column in columns:
        for rule in column.validations:
            condition = rule.condition
            if condition is None or not condition.field:
                continue
            if condition.is_form_reference:
                cross[condition.referenced_name].add(structure_name)
            elif condition.field != column.name:
                row_edges[condition.field].add(column.name)


def _add_visibility_edge(condition: Optional[ConditionSpec], dependent: str, edges: Dict[str, Set[str]]):
    if condition is not None and condition.field:
        edges[condition.referenced_name].add(dependent)


def build_dependencies(spec: FormSpec) -> DependencyGraph:
    """
    Build the dependency graph for a FormSpec

    Args:
        spec: The form configuration

    Returns:
        An immutable DependencyGraph tied to spec.id
    """
    form_level: Dict[str, Set[str]] = defaultdict(set)
    tables: Dict[str, Dict[str, Set[str]]] = {}
    datagrids: Dict[str, Dict[str, Set[str]]] = {}
    cross: Dict[str, Set[str]] = defaultdict(set)
    visible_fields: Dict[str, Set[str]] = defaultdict(set)
    visible_sections: Dict[str, Set[str]] = defaultdict(set)
    visible_pages: Dict[str, Set[str]] = defaultdict(set)

    for form_field in spec.fields:
        _add_visibility_edge(form_field.condition, form_field.name, visible_fields)

        if form_field.type == 'table' and form_field.table_config is not None:
            row_edges = defaultdict(set)
            _add_column_edges(form_field.table_config.columns, form_field.name, row_edges, cross)
            tables[form_field.name] = row_edges
            continue

        if form_field.type == 'datagrid' and form_field.datagrid_config is not None:
            row_edges = defaultdict(set)
            _add_column_edges(form_field.datagrid_config.columns, form_field.name, row_edges, cross)
            datagrids[form_field.name] = row_edges
            continue

        for rule in form_field.validations:
            condition = rule.condition
            if condition is None or not condition.field:
                continue
            referenced = condition.referenced_name
            if referenced != form_field.name:
                form_level[referenced].add(form_field.name)

    for section in spec.sections:
        _add_visibility_edge(section.condition, section.id, visible_sections)

    if spec.wizard is not None:
        for page in spec.wizard.pages:
            _add_visibility_edge(page.condition, page.id, visible_pages)

    graph = DependencyGraph(
        form_id=spec.id,
        form_level=_freeze(form_level),
        tables=_freeze_nested(tables),
        datagrids=_freeze_nested(datagrids),
        cross_structure=_freeze(cross),
        visible_fields=_freeze(visible_fields),
        visible_sections=_freeze(visible_sections),
        visible_pages=_freeze(visible_pages),
    )
    logger.debug(f"Built dependency graph for form {spec.id!r}: {len(form_level)} form-level references")
    return graph
