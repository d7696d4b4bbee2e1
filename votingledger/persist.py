'''Snapshots of election state as JSON-ready dictionaries.

:func:`to_dict` turns an election (or any of its records) into nested
dictionaries, lists and atomic values that :func:`json.dumps` accepts;
:func:`from_dict` rebuilds the object. Objects are tagged with their scoped
class name under the ``class`` key, enumeration members and hashable
containers with a ``type`` key.
'''

import sys
import enum
import inspect
import importlib
from typing import Any, List, Dict, Callable


PACKAGE_NAME = __name__.split('.')[0]


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The method serializes the object attributes named like the class's
    constructor parameters, so the class must expose every constructor
    argument under its own name (as an attribute or a property).

    :param class_: The class to add the method to.
    '''
    if hasattr(class_, 'serialize_params'):
        param_names = list(class_.serialize_params)
    else:
        param_names = [
            name for name in inspect.signature(class_.__init__).parameters
            if name != 'self'
        ]

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_class_name(self)}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return {'type': scoped_class_name(value), 'value': value.value}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif type(value) in HASHABLE_SEQUENCE_TYPES:
        return {
            'type': type(value).__name__,
            'value': [serialize_value(val) for val in value],
        }
    elif isinstance(value, dict):
        if not all(isinstance(key, str) for key in value.keys()):
            raise ValueError(f'cannot serialize non-string keys of {value!r}')
        return {key: serialize_value(val) for key, val in value.items()}
    elif isinstance(value, list):
        return [serialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        if 'type' in value and is_scoped_identifier(value['type']):
            return deserialize_typed(value)
        elif 'class' in value and is_scoped_identifier(value['class']):
            return deserialize_class(value)
        else:
            return {key: deserialize_value(val) for key, val in value.items()}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot deserialize {value!r}, type unknown')


def deserialize_typed(typedef: Dict[str, Any]) -> Any:
    if 'value' not in typedef:
        raise ValueError(f'invalid typed value contents: {typedef!r}')
    typeobj = get_object(typedef['type'])
    if isinstance(typeobj, type) and issubclass(typeobj, enum.Enum):
        return typeobj(typedef['value'])
    elif typeobj in HASHABLE_SEQUENCE_TYPES:
        return typeobj(deserialize_value(val) for val in typedef['value'])
    else:
        raise ValueError(f'unsupported value type: {typedef["type"]}')


def deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = get_object(clsdef['class'])
    if not isinstance(cls, type) or not is_package_name(cls.__module__):
        raise ValueError(f'not a restorable class: {clsdef["class"]}')
    params = clsdef.copy()
    del params['class']
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(params)
    try:
        return cls(**{
            key: deserialize_value(inner_val)
            for key, inner_val in params.items()
        })
    except TypeError as err:
        raise ValueError(f'cannot construct {clsdef["class"]}: {err}') from err


def is_package_name(name: str) -> bool:
    return name == PACKAGE_NAME or name.startswith(PACKAGE_NAME + '.')


def get_object(identifier: str) -> Any:
    '''Resolve a type tag or a class tag from a snapshot.

    Only the hashable containers and names inside this package resolve, so
    a snapshot cannot reach arbitrary callables.
    '''
    if '.' not in identifier:
        for seqtype in HASHABLE_SEQUENCE_TYPES:
            if identifier == seqtype.__name__:
                return seqtype
        raise ValueError(f'unknown builtin: {identifier}')
    module, name = identifier.rsplit('.', 1)
    if not is_package_name(module):
        raise ValueError(f'{identifier} is outside {PACKAGE_NAME}')
    if module not in sys.modules:
        try:
            importlib.import_module(module)
        except ImportError as err:
            raise ValueError(f'cannot import {module}: {err}') from err
    try:
        return getattr(sys.modules[module], name)
    except AttributeError:
        raise ValueError(f'{module} has no attribute {name}')


def from_dict(value: Dict[str, Any]) -> Any:
    """Rebuild an election object from a JSON-like dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    :raises ValueError: If the dictionary is not a valid object definition.
    """
    if not isinstance(value, dict):
        raise ValueError('invalid votingledger object def: dict expected,'
                         f' got {value!r}')
    elif 'class' not in value:
        raise ValueError('invalid votingledger object def:'
                         ' must have a class key')
    elif not is_scoped_identifier(value['class']):
        raise ValueError(f"invalid votingledger class def: {value['class']}")
    else:
        return deserialize_value(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize an election object to a JSON-ready dictionary.

    :param obj: An :class:`votingledger.election.Election` or one of its
        parts. It should provide a `to_dict()` method.
    """
    return serialize_value(obj)


def is_scoped_identifier(value: Any) -> bool:
    return (
        isinstance(value, str)
        and not value.startswith('.')
        and all(chunk.isidentifier() for chunk in value.split('.'))
    )


def scoped_class_name(value: Any) -> str:
    cls = value.__class__
    return '.'.join((cls.__module__, cls.__qualname__))


ATOMIC_TYPES: List[type] = [
    str, int, float, bool, type(None),
]

HASHABLE_SEQUENCE_TYPES: List[Callable] = [tuple, frozenset]
