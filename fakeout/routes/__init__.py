def register_blueprints(app):
    from fakeout.routes.health import health_bp
    from fakeout.routes.game import game_bp
    from fakeout.routes.users import users_bp
    from fakeout.routes.content import content_bp
    from fakeout.routes.admin import admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(game_bp, url_prefix='/api')
    app.register_blueprint(users_bp, url_prefix='/api')
    app.register_blueprint(content_bp, url_prefix='/api/content')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
