"""
Flask endpoint for the frame enhancer.

POST /enhance      frame + params -> enhanced frame + report
                   (expensive profiles are queued: 202 + job id)
GET  /jobs/<id>    result of a queued enhancement
GET  /health       liveness
"""

from flask import Flask, jsonify, request

from config import EnhancerConfig
from errors import InvalidDimensions, StageFailure, UnknownProfile
from frame_codec import PayloadError, decode_request, encode_result
from frame_enhancer import FilterPipeline
from frame_relay import BackgroundEnhancer
from logger import configure, get_logger, log_error, log_session_start

MAX_FRAME_BYTES = 50 * 1024 * 1024  # 50MB, roughly one 12MP RGBA frame as base64


CLIENT_ERRORS = (PayloadError, InvalidDimensions, UnknownProfile)


def error_status(error) -> int:
    """400 for problems with the request itself, 500 for everything else."""
    return 400 if isinstance(error, CLIENT_ERRORS) else 500


def error_response(error, status=None):
    status = status or error_status(error)
    return jsonify({'error': str(error), 'error_type': type(error).__name__}), status


def create_app(pipeline: FilterPipeline = None, background: BackgroundEnhancer = None,
               config: EnhancerConfig = None):
    config = config or EnhancerConfig()
    pipeline = pipeline or FilterPipeline(finishing_gamma=config.finishing_gamma)
    if background is None:
        background = BackgroundEnhancer(pipeline, workers=config.background_workers)
    background.start()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_FRAME_BYTES
    app.extensions['enhancer_background'] = background

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/enhance', methods=['POST'])
    def enhance():
        """
        Enhance one frame.

        Cheap profiles are processed in the request; profiles that run
        non-local means go to the background pool and the client polls
        /jobs/<id>.
        """
        payload = request.get_json(silent=True)
        if payload is None:
            return error_response(PayloadError('expected a JSON body'), 400)

        try:
            buffer, params, selector = decode_request(payload)
            profile = pipeline.resolve(buffer, selector or config.default_profile)
        except CLIENT_ERRORS as e:
            return error_response(e)

        if profile.is_expensive:
            job_id = background.submit(buffer, params, profile)
            return jsonify({'job_id': job_id, 'status': 'pending', 'profile': profile.value}), 202

        try:
            enhanced, report = pipeline.enhance(buffer, params, profile)
        except StageFailure as e:
            log_error('Enhancement failed', e)
            return error_response(e)

        return jsonify(encode_result(enhanced, report))

    @app.route('/jobs/<int:job_id>', methods=['GET'])
    def job_result(job_id):
        status = background.status(job_id)
        if status == 'unknown':
            return jsonify({'error': f'unknown job {job_id}'}), 404
        if status == 'pending':
            return jsonify({'job_id': job_id, 'status': 'pending'}), 202

        try:
            result = background.take_result(job_id, timeout=0)
        except KeyError:
            result = None
        if result is None:
            # evicted or fetched by another request since the status check
            return jsonify({'error': f'unknown job {job_id}'}), 404
        if not result.ok:
            return error_response(result.error)
        body = encode_result(result.buffer, result.report)
        body['job_id'] = job_id
        body['status'] = 'done'
        return jsonify(body)

    return app


def main():
    config = EnhancerConfig.from_env()
    configure(log_file=config.log_file)
    log_session_start("server", port=config.port, profile=config.default_profile,
                      workers=config.background_workers)
    app = create_app(config=config)
    get_logger().info(f"Enhancer listening on {config.host}:{config.port}")
    app.run(host=config.host, port=config.port, threaded=True)


if __name__ == '__main__':
    main()
