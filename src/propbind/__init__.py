"""Propbind typed configuration binding.

Propbind binds a flat, string keyed property space (environment variables,
merged config files, a plain dict) into typed and arbitrarily nested Python
objects. Target shapes are ordinary classes whose constructor parameters
carry type hints. Property names are derived from parameter names, raw values
are converted to the declared types and nested objects are built recursively.

Key Features:
    - Dataclasses, plain classes and alternative ``@constructor`` factories
    - Scalars, enums, collections, maps and untyped ``Any`` values
    - Pluggable conversion, naming and container creation strategies
    - Failure reports listing why every construction variant was rejected
    - Cached config providers with change events

Basic Usage:
    >>> from propbind.context import Context
    >>> from propbind.creator import create
    >>>
    >>> @dataclass
    >>> class Server:
    ...     host: str
    ...     port: int = 8080
    >>>
    >>> properties = {"server.host": "localhost"}
    >>> context = Context.builder(properties.get).build()
    >>> create("server", Server, context)
    Server(host='localhost', port=8080)

The library consists of several core modules:
    - context: The immutable context and its builder
    - creator: The engine entry point
    - introspection: Construction variant discovery and the ``@constructor`` decorator
    - retriever: Per-parameter value retrieval
    - instantiator / class_creator: Construction variant resolution
    - strategies: Built-in conversion, naming and container strategies
    - domain: Core domain models (TypeRef, ParameterSpec, Shape)
    - provider / events: Cached config providers and change notifications
    - errors: Library-specific exceptions
"""
