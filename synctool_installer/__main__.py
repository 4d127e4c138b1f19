from synctool_installer.runner import main

if __name__ == "__main__":
    main()
