from flask import Blueprint

# Sub-blueprints with RELATIVE prefixes (nested under api_v1 /api/v1)
from .categories import bp as categories_bp
from .control import bp as control_bp
from .households import bp as households_bp
from .voice import bp as voice_bp

api_v1 = Blueprint("api_v1", __name__, url_prefix="/api/v1")

api_v1.register_blueprint(control_bp)
api_v1.register_blueprint(households_bp)
api_v1.register_blueprint(categories_bp)
api_v1.register_blueprint(voice_bp)
