"""hostsmod configuration helpers.

Brief:
    YAML policy loading, JSON Schema validation and logging setup used by the
    ``hostsmod`` command-line entrypoint.

Inputs:
    - None.

Outputs:
    - Makes ``hostsmod.config.config_parser``, ``hostsmod.config.config_schema``
      and ``hostsmod.config.logging_config`` importable.
"""
