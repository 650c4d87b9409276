"""
Module to validate values in a loaded config against a parallel validation
config that declares the type and bounds of every parameter
"""

# Standard
from typing import Any, Callable, Dict, List, Optional

# First Party
import aconfig
import alog

# Local
from .. import constants

log = alog.use_channel("CONFG")

# Signature of a parameter validator: (value, **param_args) -> valid
VALIDATOR = Callable[..., bool]


## Public ######################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get a list of any params that are invalid

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The parallel config holding validation setup

    Returns:
        invalid_params:  List[str]
            A list of all string keys for parameters that fail validation
    """
    invalid_params = []
    for key, param_args in _parse_validation_config(validation_config).items():
        if not _validate(_nested_get(config, key), dict(param_args)):
            log.warning("Found invalid config key [%s]", key)
            invalid_params.append(key)
    return invalid_params


## Validators ##################################################################


def _in_bounds(value, lower, upper) -> bool:
    return (lower is None or value >= lower) and (upper is None or value <= upper)


def _validate_number(  # pylint: disable=redefined-builtin
    value, min=None, max=None, **_
) -> bool:
    # bool is an int subclass but never a valid number here
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and _in_bounds(value, min, max)
    )


def _validate_int(  # pylint: disable=redefined-builtin
    value, min=None, max=None, **_
) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and _in_bounds(value, min, max)
    )


def _validate_str(value, min_len=None, max_len=None, **_) -> bool:
    return isinstance(value, str) and _in_bounds(len(value), min_len, max_len)


def _validate_bool(value, **_) -> bool:
    return isinstance(value, bool)


def _validate_enum(value, values=None, **_) -> bool:
    assert values, "Must specify at least one enum value!"
    return value in values


def _validate_list(value, min_len=None, max_len=None, item_type=None, **_) -> bool:
    if not isinstance(value, list) or not _in_bounds(len(value), min_len, max_len):
        return False
    if item_type is not None:
        return all(type(item).__name__ == item_type for item in value)
    return True


_VALIDATORS: Dict[str, VALIDATOR] = {
    "number": _validate_number,
    "int": _validate_int,
    "str": _validate_str,
    "bool": _validate_bool,
    "enum": _validate_enum,
    "list": _validate_list,
}


## Implementation ##############################################################


def _validate(value: Any, param_args: dict) -> bool:
    """Run the validator named by the "type" arg against the value"""
    if param_args.pop("optional", False) and value is None:
        return True
    validator = _VALIDATORS[param_args.pop("type")]
    valid = validator(value, **param_args)
    if not valid:
        log.warning("Invalid value [%s] of type <%s>", value, type(value))
    return valid


def _nested_get(dct: dict, key: str) -> Any:
    for part in key.split(constants.NESTED_DICT_DELIM):
        if not isinstance(dct, dict):
            return None
        dct = dct.get(part)
    return dct


def _parse_validation_config(
    validation_config: aconfig.Config,
    prefix_parts: Optional[List[str]] = None,
) -> Dict[str, dict]:
    """Recursively parse the given validation config into a dict of nested keys
    pointing to the validation args for that key. A dict whose "type" names a
    known validator is a parameter; any other dict is recursed into.
    """
    output_dict = {}
    prefix_parts = prefix_parts or []
    for key, val in validation_config.items():
        assert isinstance(key, str), "Only string keys allowed!"
        if not isinstance(val, dict):
            continue
        key_parts = prefix_parts + [key]
        nested_key = constants.NESTED_DICT_DELIM.join(key_parts)
        if val.get("type") in _VALIDATORS:
            log.debug3("Found parameter at %s", nested_key)
            output_dict[nested_key] = val
        else:
            log.debug3("Recursing into %s", nested_key)
            output_dict.update(_parse_validation_config(val, key_parts))
    return output_dict
