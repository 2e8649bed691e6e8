"""n8n-deploy - provision and run n8n behind an ngrok static domain"""

__version__ = "0.3.0"
