import os

from knx_semantics.config import config


def load_config():
    base = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
    cfg = {
        'bind_host': '0.0.0.0',
        'port': 5000,
        'upload_dir': os.path.join('var', 'uploads'),
        'max_upload_mb': 50,
    }
    cfg.update(config.get('web', {}))
    if not os.path.isabs(cfg['upload_dir']):
        cfg['upload_dir'] = os.path.join(base, cfg['upload_dir'])
    return cfg


def ensure_dirs(paths):
    for p in paths:
        os.makedirs(p, exist_ok=True)


def remove_quietly(path):
    """Delete an uploaded file; a file that is already gone is fine."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
