def init_celery(app, celery_app):
    """
    Configures the global celery_app from the Flask config.
    """
    celery_app.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_always_eager=app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
    )

    # ContextTask ensures the task runs inside Flask's "app context"
    # so notification tasks can reach db.session and Flask-Mail.
    class ContextTask(celery_app.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app.Task = ContextTask
    celery_app.main = app.import_name
    return celery_app
