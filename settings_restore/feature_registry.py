"""Static table of every feature the tool can back up and restore."""
from __future__ import annotations

from typing import Iterable

from settings_restore.constants import FeatureDefinition, Prerequisite, RegistrySetting, RestoreItem
from settings_restore.errors import UnknownFeatureError

OFFICE_VERSIONS = ("16.0", "15.0", "14.0")

ADMIN_REQUIRED = Prerequisite("Administrative privileges", "admin", on_missing="warn")


def _office_keys(*suffixes: str) -> tuple[str, ...]:
    keys: list[str] = []
    for version in OFFICE_VERSIONS:
        for suffix in suffixes:
            keys.append(rf"HKCU\Software\Microsoft\Office\{version}\{suffix}")
    return tuple(keys)


def _registry(description: str, *keys: str) -> RestoreItem:
    return RestoreItem("Registry", "Registry", description, "registry", registry_keys=tuple(keys))


EXPLORER_VALUES = (
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "HideFileExt"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "Hidden"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "ShowSuperHidden"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "LaunchTo"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "NavPaneExpandToCurrentFolder"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced", "TaskbarAl"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer", "ShowFrequent"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer", "ShowRecent"),
)

SYSTEM_VALUES = (
    RegistrySetting(r"HKCU\Control Panel\Desktop", "MenuShowDelay", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Desktop", "WallPaper", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Desktop", "WallpaperStyle", "REG_SZ"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Themes\Personalize", "AppsUseLightTheme"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Themes\Personalize", "SystemUsesLightTheme"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Themes\Personalize", "EnableTransparency"),
    RegistrySetting(r"HKCU\Software\Microsoft\Windows\CurrentVersion\Search", "SearchboxTaskbarMode"),
)

MOUSE_VALUES = (
    RegistrySetting(r"HKCU\Control Panel\Mouse", "MouseSensitivity", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Mouse", "MouseSpeed", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Mouse", "DoubleClickSpeed", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Mouse", "SwapMouseButtons", "REG_SZ"),
    RegistrySetting(r"HKCU\Control Panel\Desktop", "WheelScrollLines", "REG_SZ"),
)

FEATURES: tuple[FeatureDefinition, ...] = (
    FeatureDefinition(
        key="explorer",
        name="Explorer",
        backup_folder="Explorer",
        description="File Explorer view options, Quick Access and navigation pane",
        items=(
            _registry(
                "Explorer registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\CabinetState",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Ribbon",
                r"HKCU\Software\Microsoft\Windows\Shell\Bags",
                r"HKCU\Software\Microsoft\Windows\Shell\BagMRU",
            ),
            RestoreItem(
                "Quick Access",
                "QuickAccess",
                "Pinned Quick Access locations",
                "directory",
                target="%APPDATA%/Microsoft/Windows/Recent/AutomaticDestinations",
            ),
            RestoreItem("Explorer Values", "explorer_values.json", "Individual Explorer options", "handler", handler="explorer_values"),
        ),
    ),
    FeatureDefinition(
        key="startmenu",
        name="Start Menu",
        backup_folder="StartMenu",
        description="Start layout, pinned taskbar items and Start Menu shortcuts",
        items=(
            _registry(
                "Start Menu registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\StartPage",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\StartPage2",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\Taskband",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Start",
            ),
            RestoreItem("Start Layout", "start_layout.xml", "Exported Start layout", "handler", handler="start_layout"),
            RestoreItem(
                "Start Menu Programs",
                "Programs",
                "User Start Menu shortcuts",
                "directory",
                target="%APPDATA%/Microsoft/Windows/Start Menu/Programs",
            ),
            RestoreItem(
                "Taskbar Pins",
                "TaskbarPins",
                "Pinned taskbar shortcuts",
                "directory",
                target="%APPDATA%/Microsoft/Internet Explorer/Quick Launch/User Pinned/TaskBar",
            ),
        ),
    ),
    FeatureDefinition(
        key="system-settings",
        name="System Settings",
        backup_folder="SystemSettings",
        description="Desktop, theme, environment and search preferences",
        items=(
            _registry(
                "System registry settings",
                r"HKCU\Control Panel\Desktop",
                r"HKCU\Control Panel\International",
                r"HKCU\Environment",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Themes",
                r"HKLM\SYSTEM\CurrentControlSet\Control\Session Manager\Environment",
            ),
            RestoreItem("System Values", "system_values.json", "Individual desktop and theme values", "handler", handler="system_values"),
        ),
    ),
    FeatureDefinition(
        key="outlook",
        name="Outlook",
        backup_folder="Outlook",
        description="Outlook profiles, signatures, templates and stationery",
        items=(
            _registry("Outlook registry settings", *_office_keys("Outlook", r"Common\MailSettings")),
            RestoreItem("Signatures", "Signatures", "Email signatures", "directory", target="%APPDATA%/Microsoft/Signatures"),
            RestoreItem("Templates", "Templates", "Outlook templates", "directory", target="%APPDATA%/Microsoft/Templates"),
            RestoreItem("Stationery", "Stationery", "Stationery and themes", "directory", target="%APPDATA%/Microsoft/Stationery"),
            RestoreItem("Outlook AppData", "AppData", "Rules, views and navigation pane", "directory", target="%APPDATA%/Microsoft/Outlook"),
        ),
        prerequisites=(Prerequisite("Office installed", "registry_key", r"HKCU\Software\Microsoft\Office"),),
    ),
    FeatureDefinition(
        key="onenote",
        name="OneNote",
        backup_folder="OneNote",
        description="OneNote desktop and UWP settings",
        items=(
            _registry(
                "OneNote registry settings",
                *_office_keys("OneNote", r"Common\OneNote"),
                r"HKCU\Software\Microsoft\OneNote",
            ),
            RestoreItem("Local AppData", "LocalAppData", "OneNote local cache settings", "directory", target="%LOCALAPPDATA%/Microsoft/OneNote"),
            RestoreItem("Roaming AppData", "RoamingAppData", "OneNote roaming settings", "directory", target="%APPDATA%/Microsoft/OneNote"),
            RestoreItem(
                "UWP Settings",
                "UWP",
                "OneNote for Windows 10 state",
                "directory",
                target="%LOCALAPPDATA%/Packages/Microsoft.Office.OneNote_8wekyb3d8bbwe/LocalState",
            ),
        ),
        prerequisites=(Prerequisite("Office installed", "registry_key", r"HKCU\Software\Microsoft\Office"),),
    ),
    FeatureDefinition(
        key="visio",
        name="Visio",
        backup_folder="Visio",
        description="Visio options, custom stencils and templates",
        items=(
            _registry("Visio registry settings", *_office_keys("Visio", r"Common\Visio")),
            RestoreItem("AppData", "AppData", "Visio application data", "directory", target="%APPDATA%/Microsoft/Visio"),
            RestoreItem("My Shapes", "MyShapes", "Custom stencils", "directory", target="%USERPROFILE%/Documents/My Shapes"),
            RestoreItem("Templates", "Templates", "Visio templates", "directory", target="%APPDATA%/Microsoft/Templates"),
        ),
        prerequisites=(Prerequisite("Office installed", "registry_key", r"HKCU\Software\Microsoft\Office"),),
    ),
    FeatureDefinition(
        key="excel",
        name="Excel",
        backup_folder="Excel",
        description="Excel options, security preferences, templates, add-ins and startup folder",
        items=(
            _registry(
                "Excel registry settings",
                *_office_keys("Excel", r"Common\Excel"),
                r"HKLM\SOFTWARE\Microsoft\Office\16.0\Excel",
            ),
            RestoreItem("AppData", "AppData", "Excel application data", "directory", target="%APPDATA%/Microsoft/Excel"),
            RestoreItem("Templates", "Templates", "Office templates", "directory", target="%APPDATA%/Microsoft/Templates"),
            RestoreItem("XLSTART", "XLSTART", "Workbooks opened at startup", "directory", target="%APPDATA%/Microsoft/Excel/XLSTART"),
            RestoreItem("AddIns", "AddIns", "Excel add-ins", "directory", target="%APPDATA%/Microsoft/AddIns"),
            RestoreItem("Recent", "Recent", "Recent file shortcuts", "directory", target="%APPDATA%/Microsoft/Office/Recent"),
        ),
        prerequisites=(Prerequisite("Office installed", "registry_key", r"HKCU\Software\Microsoft\Office"),),
    ),
    FeatureDefinition(
        key="word",
        name="Word",
        backup_folder="Word",
        description="Word options, Normal template, startup add-ins and dictionaries",
        items=(
            _registry("Word registry settings", *_office_keys("Word", r"Common\Word")),
            RestoreItem("AppData", "AppData", "Word application data", "directory", target="%APPDATA%/Microsoft/Word"),
            RestoreItem("Templates", "Templates", "Normal.dotm and templates", "directory", target="%APPDATA%/Microsoft/Templates"),
            RestoreItem("Startup", "STARTUP", "Startup add-ins", "directory", target="%APPDATA%/Microsoft/Word/STARTUP"),
            RestoreItem("Dictionaries", "UProof", "Custom dictionaries", "directory", target="%APPDATA%/Microsoft/UProof"),
        ),
        prerequisites=(Prerequisite("Office installed", "registry_key", r"HKCU\Software\Microsoft\Office"),),
    ),
    FeatureDefinition(
        key="vpn",
        name="VPN",
        backup_folder="VPN",
        description="VPN connections, phonebooks, certificates and OpenVPN profiles",
        items=(
            _registry(
                "VPN registry settings",
                r"HKLM\SYSTEM\CurrentControlSet\Services\RasMan\Parameters",
                r"HKCU\Software\Microsoft\RasAutoDial",
                r"HKCU\Software\OpenVPN-GUI",
            ),
            RestoreItem("Connections", "vpn_connections.json", "Built-in VPN connections", "handler", handler="vpn_connections"),
            RestoreItem("Certificates", "Certificates", "Client certificates", "handler", handler="vpn_certificates"),
            RestoreItem(
                "User Phonebook",
                "rasphone_user.pbk",
                "Per-user dial-up and VPN phonebook",
                "file",
                target="%APPDATA%/Microsoft/Network/Connections/Pbk/rasphone.pbk",
            ),
            RestoreItem(
                "System Phonebook",
                "rasphone_system.pbk",
                "All-user dial-up and VPN phonebook",
                "file",
                target="%ProgramData%/Microsoft/Network/Connections/Pbk/rasphone.pbk",
            ),
            RestoreItem("OpenVPN Profiles", "OpenVPN", "OpenVPN configuration files", "directory", target="%USERPROFILE%/OpenVPN/config"),
        ),
    ),
    FeatureDefinition(
        key="ssh",
        name="SSH",
        backup_folder="SSH",
        description="OpenSSH configuration, known hosts, PuTTY and WinSCP settings",
        items=(
            _registry(
                "SSH client registry settings",
                r"HKLM\SOFTWARE\OpenSSH",
                r"HKCU\Software\SimonTatham\PuTTY",
                r"HKCU\Software\Martin Prikryl\WinSCP 2",
            ),
            RestoreItem("User SSH", "ssh", "User .ssh directory without private keys", "handler", handler="ssh_directory"),
            RestoreItem("System Config", "sshd_config", "OpenSSH server configuration", "file", target="%ProgramData%/ssh/sshd_config"),
            RestoreItem("PuTTY", "PuTTY", "PuTTY configuration files", "directory", target="%APPDATA%/PuTTY"),
            RestoreItem("WinSCP", "WinSCP", "WinSCP configuration files", "directory", target="%APPDATA%/WinSCP"),
        ),
    ),
    FeatureDefinition(
        key="touchpad",
        name="Touchpad",
        backup_folder="Touchpad",
        description="Precision touchpad gestures and vendor driver settings",
        items=(
            _registry(
                "Touchpad registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\PrecisionTouchPad",
                r"HKCU\Software\Synaptics",
                r"HKCU\Software\Elantech",
                r"HKLM\SOFTWARE\Synaptics",
            ),
            RestoreItem("Devices", "touchpad_devices.json", "Touchpad device enabled state", "handler", handler="touchpad_devices"),
        ),
    ),
    FeatureDefinition(
        key="touchscreen",
        name="Touchscreen",
        backup_folder="Touchscreen",
        description="Touch, pen and touch keyboard settings",
        items=(
            _registry(
                "Touchscreen registry settings",
                r"HKCU\Software\Microsoft\Wisp\Touch",
                r"HKCU\Software\Microsoft\Wisp\Pen",
                r"HKCU\Software\Microsoft\TabletTip",
                r"HKLM\SOFTWARE\Microsoft\TouchPrediction",
            ),
            RestoreItem("Devices", "touchscreen_devices.json", "Touchscreen device enabled state", "handler", handler="touchscreen_devices"),
        ),
    ),
    FeatureDefinition(
        key="mouse",
        name="Mouse",
        backup_folder="Mouse",
        description="Pointer speed, cursors, buttons and wheel settings",
        items=(
            _registry(
                "Mouse registry settings",
                r"HKCU\Control Panel\Mouse",
                r"HKCU\Control Panel\Cursors",
                r"HKCU\Control Panel\Accessibility\MouseKeys",
            ),
            RestoreItem("Mouse Values", "mouse_values.json", "Individual pointer values", "handler", handler="mouse_values"),
            RestoreItem("Devices", "mouse_devices.json", "Pointing device enabled state", "handler", handler="mouse_devices"),
        ),
    ),
    FeatureDefinition(
        key="keyboard",
        name="Keyboard",
        backup_folder="Keyboard",
        description="Keyboard layouts, input methods and accessibility keys",
        items=(
            _registry(
                "Keyboard registry settings",
                r"HKCU\Keyboard Layout",
                r"HKCU\Software\Microsoft\CTF",
                r"HKCU\Software\Microsoft\Input",
                r"HKCU\Control Panel\Keyboard",
                r"HKCU\Control Panel\Accessibility\StickyKeys",
                r"HKCU\Control Panel\Accessibility\ToggleKeys",
                r"HKCU\Control Panel\Accessibility\Keyboard Response",
            ),
            RestoreItem("Devices", "keyboard_devices.json", "Keyboard device enabled state", "handler", handler="keyboard_devices"),
        ),
    ),
    FeatureDefinition(
        key="display",
        name="Display",
        backup_folder="Display",
        description="Visual effects, themes and display hardware inventory",
        items=(
            _registry(
                "Display registry settings",
                r"HKCU\Software\Microsoft\Windows\DWM",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\VisualEffects",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\ThemeManager",
                r"HKCU\Control Panel\Desktop\WindowMetrics",
            ),
            RestoreItem("Themes", "Themes", "Installed themes and wallpaper cache", "directory", target="%APPDATA%/Microsoft/Windows/Themes"),
            RestoreItem("Display Information", "display_info.json", "Video controllers and monitors", "info", handler="display_info"),
        ),
    ),
    FeatureDefinition(
        key="printer",
        name="Printers",
        backup_folder="Printer",
        description="Default printer preference and printer inventory",
        items=(
            _registry(
                "Printer registry settings",
                r"HKCU\Printers",
                r"HKCU\Software\Microsoft\Windows NT\CurrentVersion\Windows",
                r"HKCU\Software\Microsoft\Windows NT\CurrentVersion\Devices",
            ),
            RestoreItem("Printer Information", "printers.json", "Installed printers and ports", "info", handler="printer_info"),
        ),
    ),
    FeatureDefinition(
        key="sound",
        name="Sound",
        backup_folder="Sound",
        description="Sound scheme, communication ducking and audio device inventory",
        items=(
            _registry(
                "Sound registry settings",
                r"HKCU\AppEvents\Schemes",
                r"HKCU\Software\Microsoft\Multimedia\Audio",
                r"HKCU\Software\Microsoft\Internet Explorer\LowRegistry\Audio\PolicyConfig",
            ),
            RestoreItem("Sound Devices", "sound_devices.json", "Audio endpoints", "info", handler="sound_devices"),
        ),
    ),
    FeatureDefinition(
        key="power",
        name="Power",
        backup_folder="Power",
        description="Active power scheme and power policy settings",
        items=(
            _registry(
                "Power registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\PowerOptions",
                r"HKLM\SYSTEM\CurrentControlSet\Control\Power",
                r"HKLM\SOFTWARE\Policies\Microsoft\Power\PowerSettings",
            ),
            RestoreItem("Active Scheme", "active_scheme.pow", "Exported active power scheme", "handler", handler="power_scheme"),
        ),
        prerequisites=(ADMIN_REQUIRED,),
    ),
    FeatureDefinition(
        key="network",
        name="Network",
        backup_folder="Network",
        description="Wireless profiles, proxy settings and hosts file",
        items=(
            _registry(
                "Network registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Internet Settings",
                r"HKLM\SYSTEM\CurrentControlSet\Services\Tcpip\Parameters",
                r"HKLM\SYSTEM\CurrentControlSet\Services\Dnscache\Parameters",
            ),
            RestoreItem("Wireless Profiles", "WiFi", "Exported WLAN profiles", "handler", handler="wlan_profiles"),
            RestoreItem("Hosts File", "hosts", "Static host entries", "file", target="%SystemRoot%/System32/drivers/etc/hosts"),
        ),
        prerequisites=(ADMIN_REQUIRED,),
    ),
    FeatureDefinition(
        key="terminal",
        name="Windows Terminal",
        backup_folder="Terminal",
        description="Windows Terminal settings and profiles",
        items=(
            RestoreItem(
                "Settings",
                "Settings",
                "Windows Terminal settings.json and state",
                "directory",
                target="%LOCALAPPDATA%/Packages/Microsoft.WindowsTerminal_8wekyb3d8bbwe/LocalState",
            ),
            RestoreItem(
                "Preview Settings",
                "PreviewSettings",
                "Windows Terminal Preview settings",
                "directory",
                target="%LOCALAPPDATA%/Packages/Microsoft.WindowsTerminalPreview_8wekyb3d8bbwe/LocalState",
            ),
        ),
    ),
    FeatureDefinition(
        key="powershell",
        name="PowerShell",
        backup_folder="PowerShell",
        description="PowerShell profiles and execution policy",
        items=(
            _registry(
                "PowerShell registry settings",
                r"HKCU\Software\Microsoft\PowerShell\1\ShellIds\Microsoft.PowerShell",
                r"HKLM\SOFTWARE\Microsoft\PowerShell\1\ShellIds\Microsoft.PowerShell",
            ),
            RestoreItem("Profile", "PowerShell", "PowerShell 7 profile", "directory", target="%USERPROFILE%/Documents/PowerShell"),
            RestoreItem(
                "Windows PowerShell Profile",
                "WindowsPowerShell",
                "Windows PowerShell 5.1 profile",
                "directory",
                target="%USERPROFILE%/Documents/WindowsPowerShell",
            ),
        ),
    ),
    FeatureDefinition(
        key="browsers",
        name="Browsers",
        backup_folder="Browsers",
        description="Browser policies and profile preferences",
        items=(
            _registry(
                "Browser registry settings",
                r"HKCU\Software\Google\Chrome",
                r"HKCU\Software\Microsoft\Edge",
                r"HKCU\Software\Mozilla\Firefox",
                r"HKLM\SOFTWARE\Policies\Google\Chrome",
                r"HKLM\SOFTWARE\Policies\Microsoft\Edge",
            ),
            RestoreItem(
                "Chrome Bookmarks",
                "Chrome/Bookmarks",
                "Chrome default profile bookmarks",
                "file",
                target="%LOCALAPPDATA%/Google/Chrome/User Data/Default/Bookmarks",
            ),
            RestoreItem(
                "Edge Bookmarks",
                "Edge/Bookmarks",
                "Edge default profile bookmarks",
                "file",
                target="%LOCALAPPDATA%/Microsoft/Edge/User Data/Default/Bookmarks",
            ),
            RestoreItem("Firefox Profiles", "Firefox", "Firefox profiles.ini and profiles", "directory", target="%APPDATA%/Mozilla/Firefox"),
        ),
    ),
    FeatureDefinition(
        key="keepassxc",
        name="KeePassXC",
        backup_folder="KeePassXC",
        description="KeePassXC application settings (databases are not copied)",
        items=(
            _registry("KeePassXC registry settings", r"HKCU\Software\KeePassXC"),
            RestoreItem("Config", "Config", "keepassxc.ini and plugins", "directory", target="%APPDATA%/KeePassXC"),
        ),
    ),
    FeatureDefinition(
        key="gamemanagers",
        name="Game Managers",
        backup_folder="GameManagers",
        description="Steam, Epic, GOG, EA, Ubisoft and Battle.net launcher settings",
        items=(
            _registry(
                "Game launcher registry settings",
                r"HKCU\Software\Valve\Steam",
                r"HKCU\Software\Epic Games\EpicGamesLauncher",
                r"HKCU\Software\GOG.com\Galaxy",
                r"HKCU\Software\Electronic Arts\EA Desktop",
                r"HKCU\Software\Ubisoft\Launcher",
                r"HKCU\Software\Blizzard Entertainment\Battle.net",
                r"HKCU\Software\Microsoft\GameBar",
            ),
            RestoreItem(
                "Epic Settings",
                "Epic",
                "Epic Games Launcher user settings",
                "directory",
                target="%LOCALAPPDATA%/EpicGamesLauncher/Saved/Config/Windows",
            ),
        ),
    ),
    FeatureDefinition(
        key="defaultapps",
        name="Default Apps",
        backup_folder="DefaultApps",
        description="Per-user file and protocol associations",
        items=(
            _registry(
                "Default app registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Explorer\FileExts",
                r"HKCU\Software\Microsoft\Windows\Shell\Associations\UrlAssociations",
                r"HKCU\Software\Classes",
            ),
        ),
    ),
    FeatureDefinition(
        key="rdp-client",
        name="Remote Desktop Client",
        backup_folder="RDP",
        description="Remote Desktop client history and default connection file",
        items=(
            _registry("Remote Desktop client registry settings", r"HKCU\Software\Microsoft\Terminal Server Client"),
            RestoreItem("Default Connection", "Default.rdp", "Default.rdp connection file", "file", target="%USERPROFILE%/Documents/Default.rdp"),
        ),
    ),
    FeatureDefinition(
        key="rdp-server",
        name="Remote Desktop Server",
        backup_folder="RDPServer",
        description="Remote Desktop host configuration, services and firewall state",
        items=(
            _registry(
                "Remote Desktop server registry settings",
                r"HKLM\SYSTEM\CurrentControlSet\Control\Terminal Server",
                r"HKLM\SOFTWARE\Policies\Microsoft\Windows NT\Terminal Services",
                r"HKLM\SYSTEM\CurrentControlSet\Control\Remote Assistance",
                r"HKLM\SYSTEM\CurrentControlSet\Services\TermService\Parameters",
                r"HKLM\SYSTEM\CurrentControlSet\Services\UmRdpService\Parameters",
            ),
            RestoreItem("Server Configuration", "rdp_server.json", "RDP services and firewall rules", "info", handler="rdp_server_info"),
        ),
        prerequisites=(
            ADMIN_REQUIRED,
            Prerequisite(
                "RDP server available",
                "script",
                "if (Test-Path 'HKLM:\\SYSTEM\\CurrentControlSet\\Control\\Terminal Server') "
                "{ 'RDP server available' } else { 'RDP server not available' }",
                expected_output="RDP server available",
            ),
        ),
    ),
    FeatureDefinition(
        key="defender",
        name="Windows Defender",
        backup_folder="Defender",
        description="Microsoft Defender exclusions, scan settings and policies",
        items=(
            _registry(
                "Defender policy registry settings",
                r"HKLM\SOFTWARE\Policies\Microsoft\Windows Defender",
                r"HKLM\SOFTWARE\Microsoft\Security Center\Notifications",
            ),
            RestoreItem("Preferences", "defender_preferences.json", "Exclusions and scan preferences", "handler", handler="defender_preferences"),
        ),
        prerequisites=(
            ADMIN_REQUIRED,
            Prerequisite(
                "Windows Defender available",
                "script",
                "if (Get-Command Get-MpPreference -ErrorAction SilentlyContinue) "
                "{ 'Windows Defender available' } else { 'Windows Defender not available' }",
                expected_output="Windows Defender available",
            ),
        ),
    ),
    FeatureDefinition(
        key="windows-updates",
        name="Windows Updates",
        backup_folder="WindowsUpdates",
        description="Update policies plus installed update and Store app lists for reference",
        items=(
            _registry(
                "Windows Update policy registry settings",
                r"HKLM\SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate",
            ),
            RestoreItem("Installed Updates", "installed_updates.json", "Installed hotfixes", "info", handler="update_history"),
            RestoreItem("Store Apps", "store_apps.json", "Installed AppX packages", "info", handler="store_apps"),
        ),
        prerequisites=(
            Prerequisite(
                "System access",
                "script",
                "if (Get-CimInstance Win32_OperatingSystem -ErrorAction SilentlyContinue) "
                "{ 'System access confirmed' } else { 'Unable to access system information' }",
                expected_output="System access confirmed",
            ),
        ),
    ),
    FeatureDefinition(
        key="wsl",
        name="WSL",
        backup_folder="WSL",
        description="Windows Subsystem for Linux settings and distribution list",
        items=(
            _registry(
                "WSL registry settings",
                r"HKCU\Software\Microsoft\Windows\CurrentVersion\Lxss",
                r"HKLM\SYSTEM\CurrentControlSet\Services\LxssManager",
            ),
            RestoreItem("WSL Config", ".wslconfig", "Per-user .wslconfig", "file", target="%USERPROFILE%/.wslconfig"),
            RestoreItem("Distributions", "wsl_distributions.json", "Registered distributions", "info", handler="wsl_distributions"),
        ),
        prerequisites=(
            Prerequisite(
                "WSL available",
                "script",
                "if (Get-Command wsl -ErrorAction SilentlyContinue) { 'WSL system available' } "
                "else { 'WSL system not available' }",
                expected_output="WSL system available",
            ),
        ),
    ),
    FeatureDefinition(
        key="applications",
        name="Applications",
        backup_folder="Applications",
        description="Packages installed with winget, Chocolatey and Scoop",
        items=(
            RestoreItem("Winget Packages", "winget_packages.json", "winget export manifest", "handler", handler="winget_packages"),
            RestoreItem("Chocolatey Packages", "choco_packages.json", "Chocolatey package list", "handler", handler="choco_packages"),
            RestoreItem("Scoop Packages", "scoop_export.json", "Scoop buckets and apps", "handler", handler="scoop_packages"),
            RestoreItem(
                "Winget Settings",
                "WingetSettings",
                "winget settings.json",
                "directory",
                target="%LOCALAPPDATA%/Packages/Microsoft.DesktopAppInstaller_8wekyb3d8bbwe/LocalState",
            ),
        ),
    ),
    FeatureDefinition(
        key="windows-capabilities",
        name="Windows Capabilities",
        backup_folder="WindowsCapabilities",
        description="Installed Features on Demand (OpenSSH, RSAT, language components)",
        items=(
            RestoreItem("Capabilities", "capabilities.json", "Installed Windows capabilities", "handler", handler="windows_capabilities"),
        ),
        prerequisites=(ADMIN_REQUIRED,),
    ),
    FeatureDefinition(
        key="windows-optional-features",
        name="Windows Optional Features",
        backup_folder="WindowsOptionalFeatures",
        description="Enabled optional features (Hyper-V, WSL, .NET 3.5)",
        items=(
            RestoreItem("Optional Features", "optional_features.json", "Enabled optional features", "handler", handler="optional_features"),
        ),
        prerequisites=(ADMIN_REQUIRED,),
    ),
    FeatureDefinition(
        key="drivers",
        name="Drivers",
        backup_folder="Drivers",
        description="Installed driver inventory for reference",
        items=(RestoreItem("Driver List", "drivers.json", "Signed drivers installed on the machine", "info", handler="driver_list"),),
    ),
)

_FEATURES_BY_KEY = {feature.key: feature for feature in FEATURES}


def list_features() -> tuple[FeatureDefinition, ...]:
    return FEATURES


def get_feature(key: str) -> FeatureDefinition:
    normalized = key.strip().lower()
    feature = _FEATURES_BY_KEY.get(normalized)
    if feature is not None:
        return feature
    for candidate in FEATURES:
        if normalized in {candidate.name.lower(), candidate.backup_folder.lower()}:
            return candidate
    raise UnknownFeatureError(f"Unknown feature: {key}")


def resolve_features(keys: Iterable[str]) -> list[FeatureDefinition]:
    return [get_feature(key) for key in keys]
