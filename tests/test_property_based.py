"""
Property-based tests for the naming utilities, the priority allocator and the
build spec assembly.
Uses Hypothesis to generate test cases and verify properties hold across all inputs.
"""

import json
import tempfile
from pathlib import Path

from hypothesis import assume, given, settings, strategies as st
from hypothesis.strategies import composite

from spicedlings_shared.buildspec import image_definitions_command, post_build_commands
from spicedlings_shared.names import (
    camel_case,
    kebab_case,
    resource_camel_case_name,
    resource_kebab_case_name,
    words,
)
from spicedlings_shared.priorities import TargetGroupPriorities
from spicedlings_shared.services import ServiceRegistry, build_service
from spicedlings_shared.types import ServiceType, SpicedlingIdentity


# Custom strategies for generating test data
name_part = st.text(
    alphabet=st.characters(whitelist_categories=('Lu', 'Ll', 'Nd'), whitelist_characters=' -_'),
    min_size=1,
    max_size=20,
)


@composite
def identities(draw):
    """Generate identities whose parts all contain at least one word."""
    parts = [draw(name_part) for _ in range(3)]
    for part in parts:
        assume(words(part))
    return SpicedlingIdentity(cohort=parts[0], first_name=parts[1], last_name=parts[2])


@composite
def stack_names(draw):
    return draw(st.lists(
        st.from_regex(r'[A-Z][A-Za-z0-9]{0,40}', fullmatch=True),
        min_size=1,
        max_size=15,
        unique=True,
    ))


class TestNamingProperties:
    """Property: kebab and camel names only differ by casing and separators."""

    @given(identity=identities(), resource=name_part)
    @settings(max_examples=200)
    def test_kebab_and_camel_share_tokens(self, identity, resource):
        assume(words(resource))

        kebab = resource_kebab_case_name(resource, identity)
        camel = resource_camel_case_name(resource, identity)

        kebab_base, kebab_resource = kebab.split('/')
        camel_base, camel_resource = camel.split('/')
        assert kebab_base.replace('-', '') == camel_base.lower()
        assert kebab_resource.replace('-', '') == camel_resource.lower()

    @given(identity=identities(), resource=name_part)
    @settings(max_examples=100)
    def test_names_are_deterministic(self, identity, resource):
        assert resource_kebab_case_name(resource, identity) == resource_kebab_case_name(resource, identity)

    @given(text=name_part)
    @settings(max_examples=200)
    def test_kebab_case_is_idempotent(self, text):
        """Property: re-casing a kebab-cased name does not change it."""
        assert kebab_case(kebab_case(text)) == kebab_case(text)

    @given(text=st.from_regex(r'[A-Z][a-z]+( [A-Z][a-z]+)*', fullmatch=True))
    @settings(max_examples=200)
    def test_camel_case_of_names_is_idempotent(self, text):
        """Property: re-casing a camel-cased person or service name does not change it."""
        assert camel_case(camel_case(text)) == camel_case(text)

    @given(text=name_part)
    @settings(max_examples=200)
    def test_kebab_case_is_ascii(self, text):
        kebab = kebab_case(text)
        assert all(char.isalnum() or char == '-' for char in kebab)
        assert not kebab.startswith('-') and not kebab.endswith('-')


class TestPriorityProperties:
    """Properties of the target group priority allocator."""

    @given(names=stack_names())
    @settings(max_examples=50, deadline=None)
    def test_distinct_names_get_consecutive_priorities(self, names):
        """Property: N distinct names on an empty table get exactly 1..N."""
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / 'priorities.json'
            path.write_text('{}', encoding='utf-8')
            priorities = TargetGroupPriorities(path)

            allocated = [priorities.get_available_priority(name) for name in names]

            assert allocated == list(range(1, len(names) + 1))

    @given(names=stack_names(), data=st.data())
    @settings(max_examples=50, deadline=None)
    def test_allocation_is_idempotent(self, names, data):
        """Property: asking again never changes a priority or grows the table."""
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / 'priorities.json'
            path.write_text('{}', encoding='utf-8')
            priorities = TargetGroupPriorities(path)

            first = {name: priorities.get_available_priority(name) for name in names}
            again = data.draw(st.lists(st.sampled_from(names), min_size=1, max_size=20))

            for name in again:
                assert priorities.get_available_priority(name) == first[name]

            assert json.loads(path.read_text(encoding='utf-8')) == first


class TestBuildSpecProperties:
    """Properties of the post build phase."""

    @given(service_names=st.lists(
        st.from_regex(r'[A-Z][a-z]{2,10}', fullmatch=True),
        min_size=1,
        max_size=6,
        unique_by=str.lower,
    ))
    @settings(max_examples=50)
    def test_image_definitions_once_and_last(self, service_names):
        registry = ServiceRegistry()
        for name in service_names:
            registry.register(build_service(
                {'type': ServiceType.POSTGRES, 'name': name},
                f"repo-{name.lower()}",
                f"arn-{name.lower()}",
                'pw',
            ))

        commands = post_build_commands(registry)

        assert commands[-1] == image_definitions_command(registry)
        assert sum('imagedefinitions.json' in command for command in commands) == 1
        pushes = [command for command in commands if command.startswith('docker push')]
        assert pushes == [f"docker push repo-{name.lower()}:latest" for name in service_names]
