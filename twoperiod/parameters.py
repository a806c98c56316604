"""
Named calibrations of the two-period model, stored in YAML.  A calibration
may name another in an EXTENDS entry, in which case it starts from that one
and overrides only the keys it lists.
"""
import copy
import os

import yaml

default_config_path = os.path.join(
    os.path.dirname(__file__), "ConsumptionSaving", "TwoPeriodParameters.yaml"
)


def read_config(path=None):
    """
    Read a YAML file of named calibrations into a dictionary.

    Parameters
    ----------
    path : str or None
        Location of the file; the calibrations shipped with the package by
        default.

    Returns
    -------
    config : dict
        Calibration name -> raw parameter dictionary.
    """
    if path is None:
        path = default_config_path
    with open(path) as f:
        config = yaml.safe_load(f)
    if not isinstance(config, dict):
        raise ValueError("No calibrations found in {}".format(path))
    return config


def inherit(params, config, seen=()):
    """
    Resolve the EXTENDS chain of one calibration.
    """
    if "EXTENDS" not in params:
        return copy.copy(params)

    parent = params["EXTENDS"]
    if parent in seen:
        raise ValueError("Circular EXTENDS chain through '{}'".format(parent))
    if parent not in config:
        raise KeyError("Calibration extends unknown calibration '{}'".format(parent))

    new = inherit(config[parent], config, seen + (parent,))
    new.update(params)
    del new["EXTENDS"]
    return new


def load_parameters(name="baseline", path=None):
    """
    Load one named calibration, with its EXTENDS chain resolved.

    Parameters
    ----------
    name : str
        Name of the calibration.
    path : str or None
        YAML file to read; the shipped calibrations by default.

    Returns
    -------
    params : dict
        Keyword arguments for TwoPeriodConsumerType.
    """
    config = read_config(path)
    if name not in config:
        raise KeyError(
            "No calibration named '{}'; available: {}".format(
                name, ", ".join(sorted(config))
            )
        )
    return inherit(config[name], config, (name,))


def load_all_parameters(path=None):
    config = read_config(path)
    return {key: inherit(config[key], config, (key,)) for key in config}
