"""HTTP front end for the feed pipeline.

Endpoints:
    GET  /api/endpoint       - Discover the current ranking URL (headless browser, slow)
    GET  /api/podcasts       - Cached enriched episodes, no scraping
    POST /api/update-data    - Run a refresh
    POST /api/force-update   - Drop the cached snapshot, then refresh
    POST /api/generate-xml   - Rebuild the feeds from the cached snapshot
    POST /api/clear-cache    - Delete the cached snapshot and RSS
    GET  /rss                - Cached secondary RSS document
    GET  /public/feed.xml    - Published podcast feed
    GET  /public             - JSON listing of the public directory
"""
from datetime import datetime, timezone
from pathlib import Path

from flask import Flask, Response, jsonify, request, send_file
from loguru import logger as log
from werkzeug.security import safe_join

from pipeline import FeedPipeline

AVAILABLE_ENDPOINTS = ['/', '/api/endpoint', '/api/podcasts', '/api/update-data', '/api/generate-xml',
                       '/api/clear-cache', '/api/force-update', '/rss', '/public']


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _ok(status: int = 200, **payload):
    return jsonify(success=True, **payload, timestamp=_timestamp()), status


def _fail(error, status: int = 500, **payload):
    return jsonify(success=False, error=str(error), **payload, timestamp=_timestamp()), status


def create_app(pipeline: FeedPipeline) -> Flask:
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.json.sort_keys = False
    public_dir = pipeline.store.public_dir

    @app.before_request
    def preflight():
        if request.method == 'OPTIONS':
            return Response(status=200)

    @app.after_request
    def cors(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        return response

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(_error):
        return _fail('Not found', status=404, availableEndpoints=AVAILABLE_ENDPOINTS)

    @app.route('/')
    @app.route('/index.html')
    def index():
        """Admin panel, when one has been dropped into the public directory."""
        index_path = public_dir / 'index.html'
        if not index_path.is_file():
            return not_found(None)
        return send_file(index_path, mimetype='text/html')

    @app.route('/public')
    @app.route('/public/')
    def public_listing():
        if not public_dir.is_dir():
            return _fail('Directory does not exist', status=404, path=request.path)
        files = []
        for entry in sorted(public_dir.iterdir()):
            if entry.name.startswith('.'):
                continue
            stats = entry.stat()
            files.append({
                'name': entry.name,
                'path': f'/public/{entry.name}',
                'size': stats.st_size,
                'isDirectory': entry.is_dir(),
                'modified': datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
            })
        return _ok(directory='/public', files=files)

    @app.route('/public/<path:filename>')
    def public_file(filename: str):
        target = safe_join(str(public_dir), filename)
        if target is None or not Path(target).is_file():
            return _fail('File does not exist', status=404, path=request.path)
        return send_file(target, max_age=3600)

    @app.route('/rss')
    def rss():
        document = pipeline.cached_rss()
        if document is None:
            return _fail('No RSS generated yet, run an update first', status=404)
        return Response(document, mimetype='application/rss+xml')

    @app.route('/api/endpoint', methods=['GET'])
    def api_endpoint():
        log.info("Endpoint discovery requested")
        try:
            api_url = pipeline.discover_endpoint()
        except Exception as e:
            log.error(f"Endpoint discovery failed: {e}")
            return _fail(e)
        return _ok(apiEndpoint=api_url)

    @app.route('/api/podcasts', methods=['GET'])
    def api_podcasts():
        episodes = [ep.to_dict() for ep in pipeline.cached_episodes()]
        return _ok(data=episodes, count=len(episodes))

    def _refresh_response(run, verb: str):
        try:
            result = run()
        except Exception as e:
            log.error(f"{verb} failed: {e}")
            return _fail(e)
        count = len(result.episodes)
        message = f"{verb} complete: {count} episodes"
        if result.from_cache:
            message += f" (served from cache: {result.error})"
        return _ok(count=count, audioCount=result.audio_count, fromCache=result.from_cache, message=message)

    @app.route('/api/update-data', methods=['POST'])
    def api_update_data():
        log.info("Manual refresh requested")
        return _refresh_response(pipeline.refresh_episodes, 'Update')

    @app.route('/api/force-update', methods=['POST'])
    def api_force_update():
        log.info("Forced refresh requested")
        return _refresh_response(pipeline.force_refresh, 'Forced update')

    @app.route('/api/generate-xml', methods=['POST'])
    def api_generate_xml():
        log.info("Feed regeneration requested")
        try:
            document = pipeline.regenerate_feed()
        except Exception as e:
            log.error(f"Feed regeneration failed: {e}")
            return _fail(e)
        return _ok(itemCount=document.item_count,
                   message=f"Generated feed with {document.item_count} episodes")

    @app.route('/api/clear-cache', methods=['POST'])
    def api_clear_cache():
        log.info("Cache clear requested")
        try:
            removed = pipeline.clear_cache()
        except OSError as e:
            log.error(f"Clearing cache failed: {e}")
            return _fail(e)
        return _ok(removed=removed, message='Cache cleared')

    return app
