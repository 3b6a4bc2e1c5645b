from supabackup.cli.app import main

main()
