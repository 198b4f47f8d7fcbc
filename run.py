from coffee_erp import create_app
from coffee_erp.extensions import celery  # noqa: F401  (celery -A run.celery worker)

app = create_app()


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
