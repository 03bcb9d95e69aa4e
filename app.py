from fooddelivery.app import create_app

# FLASK_CONFIG picks the config; the production default sends Secure-only
# cookies, so use FLASK_CONFIG=development (or FLASK_DEBUG=1) over plain HTTP.
app = create_app()

if __name__ == '__main__':
    app.run(debug=app.config['DEBUG'], host=app.config['HOST'], port=app.config['PORT'])
