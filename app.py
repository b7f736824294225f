from flask import Flask

from zkgrid.config import get_config
from zkgrid.log import setup_logging
from zkgrid.pipeline import RevealPipeline, SessionContext

from grid_routes import grid_bp, init_grid_bp


def create_app(context=None, pipeline=None):
    """Grid API 앱을 만든다.

    context를 주지 않으면 설정값으로 로컬 배포용 SessionContext
    (InMemoryLedger + TinyDB 레지스트리)를 만든다.
    """
    config = get_config()
    setup_logging(config["log_level"])

    context = context or SessionContext.create()
    pipeline = pipeline or RevealPipeline(context)

    app = Flask(__name__)
    app.config["JSON_SORT_KEYS"] = False
    app.extensions["zkgrid"] = {"context": context, "pipeline": pipeline}

    init_grid_bp(context, pipeline)
    app.register_blueprint(grid_bp)

    @app.route("/health")
    def health():
        return {"status": "ok", "hash_profile": config["hash_profile"]}

    return app


if __name__ == "__main__":
    create_app().run(debug=False)
