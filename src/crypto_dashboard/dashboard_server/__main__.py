from crypto_dashboard.dashboard_server.server import main

main()
