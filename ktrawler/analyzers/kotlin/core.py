from functools import lru_cache
import re
from typing import Dict, Optional, Sequence, Tuple

import lxml.etree
from tree_sitter import Language, Node, Parser
import tree_sitter_kotlin

from ktrawler.analyzers import FileAnalyzer, FileInfo, LineIndex, NodeKind, NodeRule, CounterSpec, SyntaxTree
from ktrawler.analyzers.core import TRUE
from ktrawler.utils import logger
from .features import KOTLIN_CATALOG, KOTLIN_RULES

TEST_DATA_REGEX = re.compile(r'(.*[/\\])?testData[/\\].*')

JUMP_LABELS = {
    'break@': 'break',
    'continue@': 'continue',
}

TYPE_NODE_TYPES = {
    'user_type', 'nullable_type', 'parenthesized_type',
    'function_type', 'type_reference', 'non_nullable_type',
}

SIMPLE_KINDS = {
    'source_file': NodeKind.FILE,
    'explicit_delegation': NodeKind.DELEGATION,
    'class_body': NodeKind.BODY,
    'enum_class_body': NodeKind.BODY,
    'secondary_constructor': NodeKind.DECLARATION,
    'anonymous_initializer': NodeKind.DECLARATION,
    'type_alias': NodeKind.DECLARATION,
    'lambda_literal': NodeKind.LAMBDA,
    'while_statement': NodeKind.WHILE,
    'do_while_statement': NodeKind.DO_WHILE,
    'range_test': NodeKind.WHEN_RANGE_CONDITION,
}

IDENTIFIER_TYPES = {'identifier', 'simple_identifier'}

# Grammar wrapper nodes whose children are attached to their parent.
TRANSPARENT_TYPES = {'declaration', 'class_member_declaration'}

Attributes = Dict[str, str]


def kotlin_test_data_filter(file_info):
    """Filter to exclude files under a `testData` directory of compiler
    test fixtures."""
    return TEST_DATA_REGEX.fullmatch(file_info.rel_path)


@lru_cache(maxsize=None)
def get_kotlin_parser() -> Parser:
    """Returns a tree-sitter Parser for the Kotlin grammar."""
    return Parser(Language(tree_sitter_kotlin.language()))


def _text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace') if node.text is not None else ''


def _child_of_type(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def _has_child_of_type(node: Node, *types: str) -> bool:
    return _child_of_type(node, *types) is not None


def _modifiers(node: Node) -> Sequence[str]:
    """Returns the text of each modifier of a declaration node."""
    modifiers = _child_of_type(node, 'modifiers')
    if modifiers is None:
        return []
    return [_text(modifier) for modifier in modifiers.named_children]


def _variance(node: Node) -> str:
    """Returns the `in`/`out` variance modifier text of a type parameter or
    type projection node, or an empty string."""
    for child in node.children:
        if child.type == 'variance_modifier':
            return _text(child)
        if child.type in ('type_parameter_modifiers', 'type_projection_modifiers'):
            variance = _variance(child)
            if variance:
                return variance
    return ''


def _class_attributes(node: Node) -> Attributes:
    modifiers = _modifiers(node)
    attributes = {}
    if 'enum' in modifiers or _has_child_of_type(node, 'enum_class_body'):
        attributes['enum'] = TRUE
    if 'inner' in modifiers:
        attributes['inner'] = TRUE
    if _has_child_of_type(node, 'interface'):
        attributes['interface'] = TRUE
    type_parameters = _child_of_type(node, 'type_parameters')
    if type_parameters is not None:
        attributes['type_parameters'] = str(len([
            child for child in type_parameters.named_children
            if child.type == 'type_parameter'
        ]))
    constructor = _child_of_type(node, 'primary_constructor')
    if constructor is not None:
        visibilities = [modifier for modifier in _modifiers(constructor)
                        if modifier in ('private', 'protected', 'internal')]
        if visibilities:
            attributes['constructor_visibility'] = visibilities[0]
        parameters = [child for child in constructor.named_children if child.type == 'class_parameter']
        for class_parameters in constructor.named_children:
            if class_parameters.type == 'class_parameters':
                parameters.extend(child for child in class_parameters.named_children
                                  if child.type == 'class_parameter')
        attributes['constructor_parameters'] = str(len(parameters))
    return attributes


def _function_attributes(node: Node) -> Attributes:
    attributes = {}
    if 'inline' in _modifiers(node):
        attributes['inline'] = TRUE
    name = node.child_by_field_name('name')
    if name is None:
        name = _child_of_type(node, *IDENTIFIER_TYPES)
    if name is not None and any(child.type in TYPE_NODE_TYPES and child.start_byte < name.start_byte
                                for child in node.children):
        attributes['receiver'] = TRUE
    return attributes


def _jump_target(node: Node, marker: Node) -> str:
    """Returns the label name following the `break@`, `continue@` or
    `return@` marker of a jump node."""
    for child in node.named_children:
        if child.start_byte >= marker.end_byte and child.type in IDENTIFIER_TYPES:
            return _text(child)
    return ''


def _is_inside_accessor(node: Node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type in ('getter', 'setter'):
            return True
        if parent.type in ('property_declaration', 'function_declaration', 'class_body', 'source_file'):
            return False
        parent = parent.parent
    return False


def normalize_node(node: Node) -> Tuple[NodeKind, Attributes]:
    """Returns the NodeKind and kind-specific attributes for a tree-sitter
    Kotlin node."""
    node_type = node.type
    if node_type == 'ERROR' or node.is_missing:
        return NodeKind.ERROR, {}
    if node_type in SIMPLE_KINDS:
        return SIMPLE_KINDS[node_type], {}
    if node_type == 'class_declaration':
        return NodeKind.CLASS, _class_attributes(node)
    if node_type == 'object_declaration':
        return NodeKind.OBJECT, {}
    if node_type == 'companion_object':
        return NodeKind.OBJECT, {'companion': TRUE}
    if node_type == 'enum_entry':
        return NodeKind.ENUM_ENTRY, ({'body': TRUE} if _has_child_of_type(node, 'class_body') else {})
    if node_type == 'function_declaration':
        return NodeKind.FUNCTION, _function_attributes(node)
    if node_type == 'anonymous_function':
        # A return type follows a colon after the parameters.
        return NodeKind.LAMBDA, ({'return_type': TRUE} if _has_child_of_type(node, ':') else {})
    if node_type == 'label':
        # `break@`/`continue@` are jump keywords, not labels.
        text = _text(node)
        if text.endswith('@') and text not in JUMP_LABELS:
            return NodeKind.LABEL, {}
    if node_type == 'labeled_expression':
        label = _child_of_type(node, 'label')
        if label is not None and _text(label) in JUMP_LABELS:
            return NodeKind.JUMP, {'keyword': JUMP_LABELS[_text(label)], 'target': _jump_target(node, label)}
    if node_type == 'return_expression':
        marker = _child_of_type(node, 'return@')
        target = _jump_target(node, marker) if marker is not None else ''
        return NodeKind.JUMP, {'keyword': 'return', 'target': target}
    if node_type == 'when_expression':
        return NodeKind.WHEN, ({'subject': TRUE} if _has_child_of_type(node, 'when_subject') else {})
    if node_type == 'property_declaration':
        binding = _child_of_type(node, 'binding_pattern_kind', 'val', 'var')
        mutable = binding is not None and _text(binding) == 'var'
        return NodeKind.PROPERTY, ({'mutable': TRUE} if mutable else {})
    if node_type == 'type_parameter':
        return NodeKind.TYPE_PARAMETER, {'variance': _variance(node)}
    if node_type == 'type_projection':
        projection = '*' if _has_child_of_type(node, '*') else _variance(node)
        return NodeKind.TYPE_ARGUMENT, {'projection': projection}
    if node_type == 'range_expression':
        operator = _child_of_type(node, '..', '..<')
        return NodeKind.BINARY, {'operator': operator.type if operator is not None else ''}
    if node_type == 'as_expression':
        operator = _child_of_type(node, 'as', 'as?')
        return NodeKind.TYPE_CAST, {'operator': operator.type if operator is not None else ''}
    if node_type in IDENTIFIER_TYPES and _text(node) == 'field' and _is_inside_accessor(node):
        return NodeKind.FIELD_REFERENCE, {}
    return NodeKind.NODE, {'type': node_type}


def convert_tree(root: Node) -> lxml.etree._Element:
    """Converts a tree-sitter Kotlin syntax tree into a normalized lxml
    element tree.

    Only named nodes, along with missing tokens, become elements.
    Declaration wrapper nodes are dropped and their children attached to
    the enclosing element.
    """
    stack = [(root, None)]
    root_element = None
    while stack:
        node, parent_element = stack.pop()
        if parent_element is not None and node.type in TRANSPARENT_TYPES:
            for child in reversed(node.children):
                if child.is_named or child.is_missing:
                    stack.append((child, parent_element))
            continue
        kind, attributes = normalize_node(node)
        attributes['start'] = str(node.start_byte)
        attributes['end'] = str(node.end_byte)
        if parent_element is None:
            element = lxml.etree.Element(kind.value, attributes)
            root_element = element
        else:
            element = lxml.etree.SubElement(parent_element, kind.value, attributes)
        # Push in reverse so children are converted, and appended, in order.
        for child in reversed(node.children):
            if child.is_named or child.is_missing:
                stack.append((child, element))
    return root_element


class KotlinAnalyzer(FileAnalyzer):
    """Analyzer that finds .kt files and parses them with tree-sitter into
    normalized lxml documents for feature counting."""
    default_name = 'kotlin'
    default_file_glob = '**/*.kt'
    default_file_filters = [
        kotlin_test_data_filter,
    ]
    """Excludes compiler test fixtures under a `testData` directory."""

    def __init__(self, *,
                 rules: Optional[Sequence[NodeRule]] = None,
                 catalog: Optional[Sequence[CounterSpec]] = None,
                 **kwargs):
        """
        Args:
            rules: NodeRules to apply. Defaults to all built-in Kotlin rules.
            catalog: Feature counter declarations. Defaults to the built-in
                Kotlin catalog.
            **kwargs: Passed to [`FileAnalyzer`][ktrawler.analyzers.FileAnalyzer].
        """
        super().__init__(
            rules=KOTLIN_RULES if rules is None else rules,
            catalog=KOTLIN_CATALOG if catalog is None else catalog,
            **kwargs,
        )

    def parse(self, source: bytes) -> lxml.etree._Element:
        """Parses Kotlin source into a normalized lxml element tree."""
        tree = get_kotlin_parser().parse(source)
        return convert_tree(tree.root_node)

    def prepare_file(self, file_info: FileInfo) -> Optional[SyntaxTree]:
        try:
            with open(file_info.abs_path, 'rb') as f:
                source = f.read()
        except OSError as ex:
            logger.error((f'Skipping Kotlin file "{file_info.rel_path}" in '
                          f'project "{file_info.project_path}" that could not be read: {ex}'))
            return None
        return SyntaxTree(
            root=self.parse(source),
            rel_path=file_info.rel_path,
            line_index=LineIndex.from_bytes(source),
        )
