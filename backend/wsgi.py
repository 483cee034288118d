from unitrack import create_app

app = create_app()
