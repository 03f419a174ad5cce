from importlib import import_module
from pathlib import Path

def loader_name_for(file_path):
    """JSON files by extension; anything else is treated as CSV."""
    return 'json' if Path(file_path).suffix.lower() == '.json' else 'csv'

def get_loader(name, config):
    loader_path = config['loaders'][name]
    module_name, cls_name = loader_path.rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)()
