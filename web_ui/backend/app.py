import logging
import os
import uuid

from flask import Flask, request, jsonify
from werkzeug.utils import secure_filename

from knx_semantics import KNXProjectError, __version__
from knx_semantics.analyzer import ProjectAnalyzer
from knx_semantics.characteristics.german_characteristics import GenericGermanyCharacteristics
from knx_semantics.parsers.knx_parser import KNXParser

from .storage import ensure_dirs, load_config, remove_quietly

logger = logging.getLogger(__name__)

cfg = load_config()

app = Flask(__name__)
app.config['UPLOAD_FOLDER'] = cfg['upload_dir']
app.config['MAX_CONTENT_LENGTH'] = cfg.get('max_upload_mb', 50) * 1024 * 1024


def _save_upload():
    """Store the uploaded project; returns (path, original name) or an error response."""
    if 'file' not in request.files:
        return None, (jsonify({'error': 'no file part'}), 400)
    f = request.files['file']
    if f.filename == '':
        return None, (jsonify({'error': 'no selected file'}), 400)
    fn = secure_filename(f.filename)
    ensure_dirs([app.config['UPLOAD_FOLDER']])
    saved_path = os.path.join(app.config['UPLOAD_FOLDER'], f"{uuid.uuid4().hex}-{fn}")
    f.save(saved_path)
    return (saved_path, fn), None


def _project_summary(parser, original_name):
    return {
        'file': original_name,
        'project_id': parser.project_id,
        'project_name': parser.project_name,
        'areas': len(parser.areas),
        'devices': len(parser.devices),
        'group_addresses': len(parser.group_addresses),
    }


@app.route('/api/status')
def status():
    return jsonify({'status': 'ok', 'version': __version__})


@app.route('/api/project/preview', methods=['POST'])
def preview_project():
    upload, error = _save_upload()
    if error:
        return error
    saved_path, fn = upload
    try:
        parser = KNXParser(saved_path).parse()
        return jsonify(_project_summary(parser, fn))
    except KNXProjectError as e:
        logger.warning(f"Unable to read uploaded project {fn}: {e}")
        return jsonify({'error': str(e)}), 422
    finally:
        remove_quietly(saved_path)


@app.route('/api/project/analyze', methods=['POST'])
def analyze_project():
    upload, error = _save_upload()
    if error:
        return error
    saved_path, fn = upload
    try:
        parser = KNXParser(saved_path).parse()
        analyzer = ProjectAnalyzer(parser, GenericGermanyCharacteristics())
        lights = analyzer.analyze()
        result = _project_summary(parser, fn)
        result['poor_data_quality'] = analyzer.poor_data_quality
        result['lights'] = [light.to_dict() for light in lights]
        return jsonify(result)
    except KNXProjectError as e:
        logger.warning(f"Unable to analyze uploaded project {fn}: {e}")
        return jsonify({'error': str(e)}), 422
    finally:
        remove_quietly(saved_path)
