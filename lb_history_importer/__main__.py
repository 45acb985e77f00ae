from lb_history_importer.cli import main

main()
