from typing import List

import lxml.etree

from ktrawler.analyzers.core import NodeKind, is_set
from ktrawler.analyzers.features import CounterSpec, NodeRule, RuleContext, Tracking, node_rule


MEMBER_KINDS = {
    NodeKind.CLASS.value,
    NodeKind.OBJECT.value,
    NodeKind.FUNCTION.value,
    NodeKind.PROPERTY.value,
    NodeKind.ENUM_ENTRY.value,
    NodeKind.DECLARATION.value,
}


# Report order.
KOTLIN_CATALOG = [
    CounterSpec('syntax_errors', 'Error count', Tracking.ALWAYS),
    CounterSpec('delegation_by_specifiers', "'by' delegations", Tracking.DETAILED),
    CounterSpec('classes', 'Classes'),
    CounterSpec('companion_objects', 'Companion objects'),
    CounterSpec('primary_constructor_visibility', 'Primary constructors with non-default visibility'),
    CounterSpec('inner_classes', 'Inner classes'),
    CounterSpec('inner_classes_with_outer_type_parameters', 'Inner classes with outer type parameters',
                Tracking.DETAILED),
    CounterSpec('objects', 'Object declarations'),
    CounterSpec('top_level_objects', 'Top-level object declarations'),
    CounterSpec('enums', 'Enum classes'),
    CounterSpec('enums_with_constructor_parameters', 'Enum classes with constructor parameters'),
    CounterSpec('enums_with_entries_and_members_mixed', 'Enum classes with entries and members mixed',
                Tracking.DETAILED),
    CounterSpec('enum_entries', 'Enum entries'),
    CounterSpec('enum_entries_with_body', 'Enum entries with body'),
    CounterSpec('functions', 'Functions'),
    CounterSpec('inline_functions', 'Inline functions'),
    CounterSpec('extension_functions', 'Extension functions'),
    CounterSpec('extension_functions_in_classes', 'Extension functions inside classes'),
    CounterSpec('lambdas', 'Lambdas'),
    CounterSpec('lambdas_with_declared_return_type', 'Lambdas with declared return type', Tracking.DETAILED),
    CounterSpec('labeled_expressions', 'Labeled expressions', Tracking.DETAILED),
    CounterSpec('qualified_break_continue', "'break' or 'continue' with label", Tracking.DETAILED),
    CounterSpec('return_with_label', "'return' with label", Tracking.DETAILED),
    CounterSpec('while_loops', "'while' loops"),
    CounterSpec('do_while_loops', "'do/while' loops"),
    CounterSpec('when_with_expression', "'when' with expression"),
    CounterSpec('when_without_expression', "'when' without expression"),
    CounterSpec('when_condition_in_range', "'in' condition in 'when'"),
    CounterSpec('vals', "'val' declarations"),
    CounterSpec('vars', "'var' declarations"),
    CounterSpec('type_parameters', 'Type parameters'),
    CounterSpec('type_parameters_with_variance', 'Type parameters with variance'),
    CounterSpec('type_arguments', 'Type arguments'),
    CounterSpec('type_arguments_with_variance', 'Type arguments with variance'),
    CounterSpec('type_arguments_with_star', 'Type arguments with <*>'),
    CounterSpec('range_operators', 'Range operators'),
    CounterSpec('as_casts', "'as' casts"),
    CounterSpec('backing_fields', 'Backing fields'),
]


def get_declarations(element: lxml.etree._Element) -> List[lxml.etree._Element]:
    """Returns the member declarations of a class or object element in
    source order."""
    for body in element.iterchildren(NodeKind.BODY.value):
        return [child for child in body if child.tag in MEMBER_KINDS]
    return []


def has_enum_entries_and_members_mixed(element: lxml.etree._Element) -> bool:
    """Returns True if an enum entry follows any other member declaration."""
    inside_entries = True
    for declaration in get_declarations(element):
        if declaration.tag == NodeKind.ENUM_ENTRY.value:
            if not inside_entries:
                return True
        else:
            inside_entries = False
    return False


def has_outer_type_parameters(element: lxml.etree._Element) -> bool:
    """Returns True if any class enclosing element declares type
    parameters."""
    for enclosing_class in element.iterancestors(NodeKind.CLASS.value):
        if int(enclosing_class.get('type_parameters', 0)) > 0:
            return True
    return False


# ==== Kotlin Node Rules ====

@node_rule(NodeKind.ERROR)
def count_syntax_error(element, context: RuleContext):
    context.increment('syntax_errors', element)


# E.g. `class Foo(bar: Bar) : Bar by bar`
@node_rule(NodeKind.DELEGATION)
def count_delegation(element, context: RuleContext):
    context.increment('delegation_by_specifiers', element)


@node_rule(NodeKind.CLASS)
def count_class(element, context: RuleContext):
    """NodeRule for classes, interfaces and enum classes."""
    context.increment('classes', element)
    if is_set(element, 'inner'):
        context.increment('inner_classes', element)
        if has_outer_type_parameters(element):
            context.increment('inner_classes_with_outer_type_parameters', element)
    if element.get('constructor_visibility'):
        context.increment('primary_constructor_visibility', element)
    if is_set(element, 'enum'):
        context.increment('enums', element)
        if int(element.get('constructor_parameters', 0)) > 0:
            context.increment('enums_with_constructor_parameters', element)
        if has_enum_entries_and_members_mixed(element):
            context.increment('enums_with_entries_and_members_mixed', element)


@node_rule(NodeKind.ENUM_ENTRY)
def count_enum_entry(element, context: RuleContext):
    context.increment('enum_entries', element)
    if is_set(element, 'body'):
        context.increment('enum_entries_with_body', element)


@node_rule(NodeKind.OBJECT)
def count_object(element, context: RuleContext):
    """NodeRule for object declarations and companion objects."""
    context.increment('objects', element)
    parent = element.getparent()
    if parent is not None and parent.tag == NodeKind.FILE.value:
        context.increment('top_level_objects', element)
    if is_set(element, 'companion'):
        context.increment('companion_objects', element)


@node_rule(NodeKind.FUNCTION)
def count_function(element, context: RuleContext):
    context.increment('functions', element)
    if is_set(element, 'inline'):
        context.increment('inline_functions', element)
    if is_set(element, 'receiver'):
        context.increment('extension_functions', element)
        if next(element.iterancestors(NodeKind.CLASS.value), None) is not None:
            context.increment('extension_functions_in_classes', element)


@node_rule(NodeKind.LAMBDA)
def count_lambda(element, context: RuleContext):
    context.increment('lambdas', element)
    if is_set(element, 'return_type'):
        context.increment('lambdas_with_declared_return_type', element)


# E.g. `loop@ for (i in 1..10)`
@node_rule(NodeKind.LABEL)
def count_labeled_expression(element, context: RuleContext):
    context.increment('labeled_expressions', element)


@node_rule(NodeKind.JUMP)
def count_labeled_jump(element, context: RuleContext):
    if not element.get('target'):
        return
    keyword = element.get('keyword')
    if keyword in ('break', 'continue'):
        context.increment('qualified_break_continue', element)
    elif keyword == 'return':
        context.increment('return_with_label', element)


@node_rule(NodeKind.WHILE)
def count_while(element, context: RuleContext):
    context.increment('while_loops', element)


@node_rule(NodeKind.DO_WHILE)
def count_do_while(element, context: RuleContext):
    context.increment('do_while_loops', element)


@node_rule(NodeKind.WHEN)
def count_when(element, context: RuleContext):
    if is_set(element, 'subject'):
        context.increment('when_with_expression', element)
    else:
        context.increment('when_without_expression', element)


# E.g. `in 1..10 -> ...` as a branch condition
@node_rule(NodeKind.WHEN_RANGE_CONDITION)
def count_when_condition_in_range(element, context: RuleContext):
    context.increment('when_condition_in_range', element)


@node_rule(NodeKind.PROPERTY)
def count_property(element, context: RuleContext):
    if is_set(element, 'mutable'):
        context.increment('vars', element)
    else:
        context.increment('vals', element)


@node_rule(NodeKind.TYPE_PARAMETER)
def count_type_parameter(element, context: RuleContext):
    context.increment('type_parameters', element)
    if element.get('variance') in ('in', 'out'):
        context.increment('type_parameters_with_variance', element)


@node_rule(NodeKind.TYPE_ARGUMENT)
def count_type_argument(element, context: RuleContext):
    context.increment('type_arguments', element)
    projection = element.get('projection')
    if projection in ('in', 'out'):
        context.increment('type_arguments_with_variance', element)
    elif projection == '*':
        context.increment('type_arguments_with_star', element)


@node_rule(NodeKind.BINARY)
def count_range_operator(element, context: RuleContext):
    if element.get('operator') == '..':
        context.increment('range_operators', element)


# `as?` safe casts are not counted.
@node_rule(NodeKind.TYPE_CAST)
def count_as_cast(element, context: RuleContext):
    if element.get('operator') == 'as':
        context.increment('as_casts', element)


@node_rule(NodeKind.FIELD_REFERENCE)
def count_backing_field(element, context: RuleContext):
    context.increment('backing_fields', element)


KOTLIN_RULES: List[NodeRule] = [
    count_syntax_error,
    count_delegation,
    count_class,
    count_enum_entry,
    count_object,
    count_function,
    count_lambda,
    count_labeled_expression,
    count_labeled_jump,
    count_while,
    count_do_while,
    count_when,
    count_when_condition_in_range,
    count_property,
    count_type_parameter,
    count_type_argument,
    count_range_operator,
    count_as_cast,
    count_backing_field,
]
