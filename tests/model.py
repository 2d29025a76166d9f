from typing import Annotated, Optional

from autowire.domain import InjectionPoint
from autowire.introspection import constructor, factory_method, parameter_names


class Plain:
    pass


class Engine:
    pass


class Wheel:
    pass


class Car:
    def __init__(self, engine: Engine, wheel: Wheel):
        self.engine = engine
        self.wheel = wheel

    @constructor
    @classmethod
    def bare(cls, engine: Engine):
        return cls(engine, None)


class Garage:
    def __init__(self, car: Annotated[Car, "primary_car"]):
        self.car = car


class Widget:
    def __init__(self, size: int, label: str):
        self.size = size
        self.label = label

    @constructor
    @classmethod
    def sized(cls, size: int):
        return cls(size, "default")


class Pair:
    def __init__(self, count: int, name: str):
        self.count = count
        self.name = name
        self.via = "init"

    @constructor
    @classmethod
    def swapped(cls, name: str, count: int):
        pair = cls(count, name)
        pair.via = "swapped"
        return pair


class Plugin:
    pass


class PluginHost:
    def __init__(self, plugins: list[Plugin]):
        self.plugins = plugins


class PluginRack:
    def __init__(self, plugins: list[Plugin]):
        self.plugins = plugins

    @constructor
    @classmethod
    def from_set(cls, plugins: frozenset[Plugin]):
        return cls(list(plugins))


class Shelf:
    def __init__(self, plugins: Optional[list[Plugin]] = None):
        self.plugins = plugins

    @constructor
    @classmethod
    def powered(cls, engine: Engine):
        return cls([engine])


class Tick:
    def __init__(self, number: int):
        self.number = number


class Clocked:
    def __init__(self, tick: Tick):
        self.tick = tick


class Tuned:
    def __init__(self, engine: Engine, retries: int = 3):
        self.engine = engine
        self.retries = retries


class Exploding:
    def __init__(self, fuse: int):
        raise RuntimeError(f"boom after {fuse}")


class NamedLogger:
    def __init__(self, point: InjectionPoint):
        self.point = point


class Service:
    def __init__(self, logger: NamedLogger):
        self.logger = logger


class Settings:
    def __init__(self, host: str, port: int, debug: Optional[bool] = None):
        self.host = host
        self.port = port
        self.debug = debug


@parameter_names("left", "right")
class Span:
    def __init__(self, a: int, b: int):
        self.start = a
        self.end = b


class Connection:
    def __init__(self, url: str, pool_size: int = 1):
        self.url = url
        self.pool_size = pool_size

    @classmethod
    def open(cls, url: str) -> "Connection":
        return cls(url)

    @factory_method("build")
    @staticmethod
    def build_local(url: str) -> "Connection":
        return Connection(url)

    @factory_method("build")
    @staticmethod
    def build_pooled(url: str, pool_size: int) -> "Connection":
        return Connection(url, pool_size)

    @factory_method("parse")
    @staticmethod
    def parse_text(text: str) -> "Connection":
        return Connection(text)

    @factory_method("parse")
    @staticmethod
    def parse_any(text: object) -> "Connection":
        return Connection(str(text), pool_size=0)

    @classmethod
    def default(cls) -> "Connection":
        return cls("db://default")

    @classmethod
    def _hidden(cls, url: str) -> "Connection":
        return cls(url)


class ConnectionFactory:
    def __init__(self, prefix: str = "db://"):
        self.prefix = prefix

    def create(self, name: str) -> Connection:
        return Connection(self.prefix + name)

    def reset(self, level: int) -> None:
        pass

    def fresh(self) -> Connection:
        return Connection(self.prefix + "fresh")


class LocalConnectionFactory(ConnectionFactory):
    def create(self, name: str) -> Connection:
        return Connection("local://" + name)
