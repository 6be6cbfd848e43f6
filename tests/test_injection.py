import unittest
from types import SimpleNamespace

from scopebind import DescriptorKind, Scope, ServiceDescriptor, make_scope


class SingletonClass:
    scope = "the-scope"

    def __init__(self, scope, options=None):
        self.scope = scope
        self.options = options


class OtherService:
    transient = True

    def __init__(self, scope, options=None): ...


def test_static_services_resolve_to_themselves():
    class StaticService1:
        is_static = True

    static_service2 = SimpleNamespace()
    scoped = make_scope("", services={"service": [StaticService1, static_service2]})

    instances = scoped.get_services("service")

    assert instances[0] is StaticService1
    assert instances[1] is static_service2
    assert scoped.get_services("service")[1] is static_service2


def test_callables_flagged_static_are_never_called():
    calls = []

    def factory(scope, options=None):
        calls.append(scope)

    factory.is_static = True
    scoped = make_scope("", services={"service": [factory]})

    assert scoped.require("service") is factory
    assert calls == []


def test_scope_and_options_are_passed_to_constructors():
    class ServiceClass:
        transient = True

        def __init__(self, scope, options=None):
            self.scope = scope
            self.options = options

    class LocalSingleton:
        scope = ""

        def __init__(self, scope, options=None):
            self.scope = scope
            self.options = options

    scoped = make_scope(
        "",
        services={
            "service": [ServiceClass],
            "singleton": [LocalSingleton],
            "both": [ServiceClass, LocalSingleton],
        },
    )
    options = {"key": "value"}

    instance = scoped.require("service", options)
    assert instance.scope is scoped
    assert instance.options is options

    instance = scoped.require("singleton", options)
    assert instance.scope is scoped
    assert instance.options is options

    instances = scoped.get_services("both", options)
    assert instances[0].scope is scoped
    assert instances[0].options is options
    assert instances[1].scope is scoped
    assert instances[1].options is options


def test_plain_factories_receive_scope_and_options():
    calls = []

    def make_client(scope, options):
        calls.append((scope, options))
        return SimpleNamespace(scope=scope)

    scoped = make_scope("app", services={"client": [make_client]})

    client = scoped.require("client")

    assert client.scope is scoped
    assert calls == [(scoped, None)]
    assert scoped.require("client") is client
    assert len(calls) == 1


class TestConstructorInjection(unittest.TestCase):
    class ServiceClass:
        inject = ("singleton", "other-service", "the-scope")
        scope = "the-scope"
        transient = True

        def __init__(self, singleton, other_service, scope, options=None):
            self.scope = scope
            self.singleton = singleton
            self.other = other_service
            self.options = options

    scoped: Scope

    def setUp(self):
        self.scoped = make_scope(
            "the-scope",
            services={
                "service": [self.ServiceClass],
                "singleton": [SingletonClass],
                "other-service": [OtherService],
            },
        )

    def test_dependencies_are_passed_in_declared_order_with_options_last(self):
        options = {}

        instance = self.scoped.require("service", options)

        assert instance.scope is self.scoped
        assert instance.options is options
        assert isinstance(instance.singleton, SingletonClass)
        assert isinstance(instance.other, OtherService)

    def test_singleton_dependencies_are_shared_and_transients_are_not(self):
        instance1 = self.scoped.require("service", {})
        instance2 = self.scoped.require("service", {})

        assert instance2.singleton is instance1.singleton
        assert instance2.other is not instance1.other

    def test_options_are_not_appended_when_not_supplied(self):
        received = []

        class Recorder:
            inject = ("singleton",)
            transient = True

            def __init__(self, *args):
                received.append(args)

        self.scoped.register("recorder", Recorder)

        self.scoped.require("recorder")
        self.scoped.require("recorder", "opts")

        singleton = self.scoped.require("singleton")
        assert received == [(singleton,), (singleton, "opts")]

    def test_empty_inject_list_calls_constructor_without_the_scope(self):
        received = []

        class NoDependencies:
            inject = ()
            transient = True

            def __init__(self, *args):
                received.append(args)

        self.scoped.register("none", NoDependencies)
        self.scoped.require("none")

        assert received == [()]

    def test_missing_dependencies_are_injected_as_none(self):
        class NeedsMissing:
            inject = ("missing",)

            def __init__(self, missing):
                self.missing = missing

        self.scoped.register("needs-missing", NeedsMissing)

        assert self.scoped.require("needs-missing").missing is None


class TestPropertyInjection(unittest.TestCase):
    def test_properties_are_injected_into_static_objects(self):
        service = SimpleNamespace(
            inject_properties={
                "singleton": "singleton",
                "other": "other-service",
                "scope": "the-scope",
            }
        )
        scoped = make_scope(
            "the-scope",
            services={
                "service": [service],
                "singleton": [SingletonClass],
                "other-service": [OtherService],
            },
        )

        instance1 = scoped.require("service")
        assert instance1 is service
        assert instance1.scope is scoped
        assert isinstance(instance1.singleton, SingletonClass)
        assert isinstance(instance1.other, OtherService)

        instance2 = scoped.require("service")
        assert instance2 is instance1

    def test_properties_are_injected_after_construction_and_overwrite(self):
        class Repository:
            inject_properties = {"db": "db"}

            def __init__(self, scope, options=None):
                self.db = "placeholder"

        db = SimpleNamespace(name="db")
        scoped = make_scope("app", services={"db": [db], "repository": [Repository]})

        assert scoped.require("repository").db is db

    def test_constructor_and_property_injection_combine(self):
        class Handler:
            inject = ("db",)
            inject_properties = {"app": "app"}
            transient = True

            def __init__(self, db):
                self.db = db

        db = SimpleNamespace(name="db")
        scoped = make_scope("app", services={"db": [db], "handler": [Handler]})

        handler = scoped.require("handler")

        assert handler.db is db
        assert handler.app is scoped


class TestServiceDescriptor(unittest.TestCase):
    def test_classes_are_factories(self):
        descriptor = ServiceDescriptor.of(SingletonClass)

        assert descriptor.kind is DescriptorKind.FACTORY
        assert descriptor.scope == "the-scope"
        assert descriptor.transient is False
        assert descriptor.inject is None

    def test_callables_flagged_static_are_static(self):
        class Static:
            is_static = True

        assert ServiceDescriptor.of(Static).kind is DescriptorKind.STATIC

    def test_plain_values_are_static(self):
        assert ServiceDescriptor.of({"a": 1}).kind is DescriptorKind.STATIC

    def test_non_callables_with_injected_properties_are_properties_only(self):
        target = SimpleNamespace(inject_properties={"db": "db"})

        descriptor = ServiceDescriptor.of(target)

        assert descriptor.kind is DescriptorKind.PROPERTIES_ONLY
        assert descriptor.inject_properties == {"db": "db"}

    def test_non_string_scope_attributes_are_not_affinities(self):
        target = SimpleNamespace(scope=make_scope("app"))

        assert ServiceDescriptor.of(target).scope is None

    def test_inject_methods_are_not_injection_lists(self):
        class Injector:
            def inject(self, value):
                return value

        injector = Injector()
        scoped = make_scope("app")
        scoped.register("injector", injector)

        assert ServiceDescriptor.of(injector).inject is None
        assert scoped.require("injector") is injector

    def test_describing_a_descriptor_returns_it(self):
        descriptor = ServiceDescriptor.of(SingletonClass)

        assert ServiceDescriptor.of(descriptor) is descriptor

    def test_registered_none_resolves_to_none(self):
        scoped = make_scope("app", services={"nothing": [None]})

        assert scoped.require("nothing") is None
        assert scoped.get_services("nothing") == [None]
