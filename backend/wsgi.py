from retail_erp import create_app

app = create_app()
