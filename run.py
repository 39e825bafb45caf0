from watch_history_enricher.cli import main

if __name__ == "__main__":
    main()
