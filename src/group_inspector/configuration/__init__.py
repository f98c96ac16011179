"""
Configuration for the inspector.

- **app_configuration.py**: YAML file accessor with a shared fcntl lock while reading.
- **inspector_settings.py**: jsonschema validation and compilation of the
  mapping into filter rules, manual review settings and message overrides.
"""
