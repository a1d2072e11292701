"""
Configuration management subsystem for the emitter package.

Architecture
------------
- **config.py**: Static configuration from environment variables (.env support)
- **manager.py**: Dynamic dot-notation configuration backed by YAML defaults
- **errors.py**: Domain-specific exception hierarchy

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at import
- Includes: environment type, log level/format, directories

**Dynamic (ConfigManager):**
- Loaded from built-in defaults + YAML files, overridable at runtime
- Includes: `core.event.metrics_enabled`, `core.event.max_listeners`

Usage Examples
--------------
```python
from emitter.core.config import Config, ConfigManager

if Config.is_production():
    ...

threshold = ConfigManager.get_int("core.event.max_listeners")
```
"""

from emitter.core.config.config import Config, Environment
from emitter.core.config.errors import ConfigError, ConfigLoadError, ConfigValidationError
from emitter.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
]
