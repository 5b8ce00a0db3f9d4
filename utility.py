#!/usr/bin/env python3

from collections import ChainMap
from itertools import chain
import re


# Collections


def keys_sorted_by_value(d, reverse=False):
    return [k for k, v in sorted(d.items(), key=lambda x: x[1], reverse=reverse)]


def merge_dicts(dicts, no_clobber=True):
    """Earlier dicts win. Throws if asked to clobber while `no_clobber = True`."""
    dicts_list = list(dicts)
    if no_clobber:
        keys = list(chain.from_iterable([d.keys() for d in dicts_list]))
        if len(keys) != len(set(keys)):
            raise AssertionError(
                "Duplicate keys in dictionary merge: " + str(sorted(keys))
            )
    return dict(ChainMap(*dicts_list))


# String manipulation


def sanitize_label(s):
    """Converts camelCase field names from the data files to Python identifiers."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", s).replace("-", "_").lower()


def sanitize_keys(d):
    return {sanitize_label(k): v for k, v in d.items()}
