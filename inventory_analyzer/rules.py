"""
Deterministic classification rules.

Fallback values, upload policy, and the default rule sets seeded
into an empty rule store. Order inside each default list is significant:
the first matching rule wins.
"""

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_DEPLOYMENT_TYPE = "Desktop"
DEFAULT_DISPOSITION = "pending"
USER_DEFINED_CATEGORY = "User Defined"

UPLOAD_EXTENSIONS = (".csv", ".xlsx", ".xls")


def _exclusion(pattern_type, pattern_value, category, reason):
    return {
        "pattern_type": pattern_type,
        "pattern_value": pattern_value,
        "category": category,
        "reason": reason,
    }


def _mapping(pattern_type, original_pattern, canonical_name, category, deployment_type, description):
    return {
        "pattern_type": pattern_type,
        "original_pattern": original_pattern,
        "canonical_name": canonical_name,
        "category": category,
        "deployment_type": deployment_type,
        "description": description,
    }


DEFAULT_EXCLUSION_RULES = [
    # Windows updates and KB articles
    _exclusion("startswith", "Security Update for Microsoft", "Windows Updates", "Microsoft security patches - not business applications"),
    _exclusion("startswith", "Update for Microsoft", "Windows Updates", "Microsoft updates - not business applications"),
    _exclusion("startswith", "Definition Update for Microsoft", "Windows Updates", "Definition updates - not business applications"),
    _exclusion("contains", "(KB", "Windows Updates", "KB article updates - not business applications"),
    _exclusion("startswith", "GDR ", "Windows Updates", "SQL Server General Distribution Release patches"),
    _exclusion("startswith", "Update for Windows", "Windows Updates", "Windows system updates"),
    # OEM tools
    _exclusion("startswith", "Dell ", "OEM Tools", "Dell manufacturer management software"),
    _exclusion("startswith", "HP ", "OEM Tools", "HP manufacturer management software"),
    _exclusion("startswith", "Lenovo ", "OEM Tools", "Lenovo manufacturer management software"),
    _exclusion("startswith", "ASUS ", "OEM Tools", "ASUS manufacturer management software"),
    _exclusion("startswith", "Intel(R)", "OEM Tools", "Intel hardware management components"),
    _exclusion("startswith", "Intel®", "OEM Tools", "Intel hardware management components"),
    _exclusion("startswith", "AMD ", "OEM Tools", "AMD hardware management software"),
    _exclusion("startswith", "NVIDIA ", "OEM Tools", "NVIDIA hardware management software"),
    _exclusion("startswith", "Realtek ", "OEM Tools", "Realtek driver/audio components"),
    _exclusion("contains", "Thunderbolt", "OEM Tools", "Thunderbolt hardware drivers"),
    # Language packs
    _exclusion("endswith", "- es-es", "Language Packs", "Spanish language pack variant"),
    _exclusion("endswith", "- fr-fr", "Language Packs", "French language pack variant"),
    _exclusion("endswith", "- de-de", "Language Packs", "German language pack variant"),
    _exclusion("endswith", "- pt-br", "Language Packs", "Portuguese language pack variant"),
    _exclusion("endswith", "- it-it", "Language Packs", "Italian language pack variant"),
    _exclusion("endswith", "- ja-jp", "Language Packs", "Japanese language pack variant"),
    _exclusion("endswith", "- zh-cn", "Language Packs", "Chinese language pack variant"),
    _exclusion("contains", "para negocios - ", "Language Packs", "Spanish M365 language variant"),
    # Runtime components
    _exclusion("startswith", "Microsoft Visual C++", "Runtime Components", "Visual C++ redistributable - supporting component"),
    _exclusion("startswith", "Microsoft .NET", "Runtime Components", ".NET framework/runtime - supporting component"),
    _exclusion("startswith", "Microsoft Windows Desktop Runtime", "Runtime Components", "Windows desktop runtime - supporting component"),
    _exclusion("startswith", "Microsoft ASP.NET", "Runtime Components", "ASP.NET runtime components"),
    _exclusion("contains", "Redistributable", "Runtime Components", "Redistributable packages - supporting components"),
    _exclusion("startswith", "Microsoft System CLR Types", "Runtime Components", "CLR types - supporting component"),
    _exclusion("contains", "Visual J#", "Runtime Components", "Visual J# redistributable"),
    # Drivers
    _exclusion("contains", "Driver", "Drivers", "Hardware driver packages"),
    _exclusion("startswith", "ExpressConnect", "Drivers", "Intel wireless drivers"),
    # Windows components
    _exclusion("startswith", "Windows 10 Update", "Windows Components", "Windows update tools"),
    _exclusion("startswith", "Windows 11 Installation", "Windows Components", "Windows installation tools"),
    _exclusion("exact", "Windows PC Health Check", "Windows Components", "Windows health check utility"),
    _exclusion("exact", "Microsoft Update Health Tools", "Windows Components", "Windows update health tools"),
    # Supporting services
    _exclusion("exact", "Adobe Genuine Service", "Supporting Services", "Adobe licensing service - not main application"),
    _exclusion("exact", "Mozilla Maintenance Service", "Supporting Services", "Firefox maintenance service"),
    _exclusion("contains", "Machine-Wide Installer", "Supporting Services", "Installer service component"),
    # Misc system tools
    _exclusion("exact", "OEM Application Profile", "System Components", "OEM system profile"),
    _exclusion("startswith", "Browser for SQL Server", "Supporting Components", "SQL Server browser component"),
    _exclusion("contains", "Setup (English)", "Supporting Components", "Setup/installer component"),
]


DEFAULT_MAPPING_RULES = [
    # Industry / LOB
    _mapping("startswith", "AMS360 Client Rev", "AMS360", "Industry / LOB", "Both", "Insurance agency management system by Vertafore"),
    _mapping("contains", "AMS TransactNOW", "AMS360", "Industry / LOB", "Both", "AMS360 transaction processing component"),
    # PDF tools
    _mapping("startswith", "Adobe Acrobat", "Adobe Acrobat", "Office Productivity", "Desktop", "PDF creation and editing software"),
    _mapping("exact", "Foxit PDF Reader", "Foxit PDF", "Office Productivity", "Desktop", "PDF reader application"),
    _mapping("exact", "Foxit PhantomPDF", "Foxit PDF", "Office Productivity", "Desktop", "PDF editor application"),
    _mapping("exact", "Foxit Reader", "Foxit PDF", "Office Productivity", "Desktop", "PDF reader application"),
    _mapping("contains", "Nuance PDF", "Nuance PDF", "Office Productivity", "Desktop", "PDF editing software"),
    _mapping("exact", "Amyuni PDF Converter", "Amyuni PDF Converter", "Office Productivity", "Desktop", "PDF conversion utility"),
    # Microsoft office suites
    _mapping("startswith", "Microsoft 365 Apps for business", "Microsoft 365", "Office Productivity", "Both", "Microsoft Office suite subscription"),
    _mapping("startswith", "Microsoft 365 -", "Microsoft 365", "Office Productivity", "Both", "Microsoft Office suite subscription"),
    _mapping("startswith", "Microsoft Office Professional", "Microsoft Office", "Office Productivity", "Desktop", "Microsoft Office suite perpetual license"),
    _mapping("startswith", "Microsoft Office Standard", "Microsoft Office", "Office Productivity", "Desktop", "Microsoft Office suite perpetual license"),
    _mapping("startswith", "Microsoft OneNote -", "Microsoft OneNote", "Office Productivity", "Both", "Microsoft note-taking application"),
    _mapping("startswith", "Microsoft Visio -", "Microsoft Visio", "Office Productivity", "Desktop", "Microsoft diagramming application"),
    # SQL Server
    _mapping("contains", "SQL Server 2019", "Microsoft SQL Server 2019", "Database", "Desktop", "Microsoft relational database management system"),
    _mapping("contains", "SQL Server 2012", "Microsoft SQL Server Components", "Database", "Desktop", "Microsoft SQL Server supporting components"),
    _mapping("startswith", "Microsoft SQL Server Management Studio", "SQL Server Management Studio", "Database", "Desktop", "SQL Server database management interface"),
    _mapping("exact", "Microsoft SQL Server Reporting Services", "SQL Server Reporting Services", "Database", "Both", "SQL Server reporting platform"),
    # Collaboration
    _mapping("startswith", "Microsoft Teams", "Microsoft Teams", "Communication", "Both", "Microsoft team collaboration and messaging platform"),
    # Browsers
    _mapping("startswith", "Google Chrome", "Google Chrome", "Browser", "Desktop", "Google web browser"),
    _mapping("startswith", "Mozilla Firefox", "Mozilla Firefox", "Browser", "Desktop", "Mozilla web browser"),
    _mapping("exact", "Microsoft Edge", "Microsoft Edge", "Browser", "Desktop", "Microsoft web browser"),
    _mapping("contains", "Microsoft Edge WebView", "Microsoft Edge WebView", "Runtime Components", "Desktop", "Edge browser rendering component"),
    _mapping("startswith", "Zoom Workplace", "Zoom", "Communication", "Both", "Video conferencing and collaboration platform"),
    # Remote access
    _mapping("contains", "Cisco AnyConnect", "Cisco AnyConnect", "Remote Access", "Desktop", "Cisco VPN client for secure remote access"),
    _mapping("contains", "Cisco Secure Client", "Cisco AnyConnect", "Remote Access", "Desktop", "Cisco VPN client for secure remote access"),
    _mapping("exact", "AnyDesk", "AnyDesk", "Remote Access", "Desktop", "Remote desktop access software"),
    _mapping("startswith", "VMware Horizon", "VMware Horizon", "Remote Access", "Desktop", "Virtual desktop infrastructure client"),
    # RMM
    _mapping("exact", "AteraAgent", "Atera", "RMM / MSP Tools", "SaaS", "Remote monitoring and management agent"),
    _mapping("startswith", "Datto RMM", "Datto RMM", "RMM / MSP Tools", "SaaS", "Remote monitoring and management platform"),
    _mapping("exact", "Datto Windows Agent", "Datto RMM", "RMM / MSP Tools", "SaaS", "Datto backup and RMM agent"),
    _mapping("exact", "Liongard Agent", "Liongard", "RMM / MSP Tools", "SaaS", "IT documentation and monitoring agent"),
    _mapping("contains", "ScreenConnect", "ScreenConnect", "Remote Access", "Both", "Remote support and access tool"),
    # Security
    _mapping("exact", "Norton 360", "Norton 360", "Security", "Both", "Norton antivirus and security suite"),
    _mapping("exact", "ConcealBrowse", "ConcealBrowse", "Security", "SaaS", "Secure web browser isolation"),
    _mapping("exact", "Sentinel Agent", "SentinelOne", "Security", "SaaS", "Endpoint detection and response (EDR)"),
    _mapping("contains", "Security Manager AV", "Security Manager AV", "Security", "Desktop", "Antivirus protection software"),
    # Communication
    _mapping("startswith", "Cisco Webex", "Cisco Webex", "Communication", "Both", "Video conferencing platform"),
    _mapping("exact", "Webex", "Cisco Webex", "Communication", "Both", "Video conferencing platform"),
    _mapping("startswith", "GoToMeeting", "GoToMeeting", "Communication", "Both", "Video conferencing platform"),
    _mapping("exact", "GoTo Opener", "GoTo", "Communication", "Both", "GoTo product launcher"),
    _mapping("exact", "Skype Meetings App", "Skype", "Communication", "Both", "Video calling and messaging"),
    _mapping("exact", "GoodSync", "GoodSync", "Backup / Recovery", "Desktop", "File synchronization and backup"),
    # Utilities
    _mapping("startswith", "7-Zip", "7-Zip", "Utilities", "Desktop", "File archiver and compression tool"),
    _mapping("exact", "CCleaner", "CCleaner", "Utilities", "Desktop", "System optimization and cleaning utility"),
    _mapping("startswith", "WinSCP", "WinSCP", "Utilities", "Desktop", "SFTP and SCP file transfer client"),
    _mapping("startswith", "PuTTY", "PuTTY", "Utilities", "Desktop", "SSH and Telnet client"),
    _mapping("startswith", "WizTree", "WizTree", "Utilities", "Desktop", "Disk space analyzer"),
    _mapping("exact", "WinDirStat 1.1.2", "WinDirStat", "Utilities", "Desktop", "Disk usage statistics and cleanup"),
    _mapping("startswith", "TreeSize", "TreeSize", "Utilities", "Desktop", "Disk space manager"),
    _mapping("startswith", "Notepad++", "Notepad++", "Utilities", "Desktop", "Advanced text editor"),
    _mapping("startswith", "IrfanView", "IrfanView", "Utilities", "Desktop", "Image viewer and editor"),
    _mapping("exact", "Revo Uninstaller 2.3.8", "Revo Uninstaller", "Utilities", "Desktop", "Program uninstaller tool"),
    # Network
    _mapping("startswith", "Advanced IP Scanner", "Advanced IP Scanner", "Network / Infrastructure", "Desktop", "Network scanner for IP addresses"),
    _mapping("startswith", "Nmap", "Nmap", "Network / Infrastructure", "Desktop", "Network discovery and security scanner"),
    _mapping("exact", "Npcap OEM", "Npcap", "Network / Infrastructure", "Desktop", "Packet capture library"),
    _mapping("exact", "SNMPv3 agent 1.1", "SNMPv3 Agent", "Network / Infrastructure", "Desktop", "SNMP monitoring agent"),
    # Development
    _mapping("startswith", "Visual Studio Community", "Visual Studio", "Development Tools", "Desktop", "Microsoft integrated development environment"),
    _mapping("exact", "Azure Data Studio", "Azure Data Studio", "Development Tools", "Desktop", "Cross-platform database tool"),
    _mapping("startswith", "Java 8", "Java Runtime", "Runtime Components", "Desktop", "Java runtime environment"),
    # Industry specific
    _mapping("startswith", "iChannel", "iChannel", "Industry / LOB", "Desktop", "Insurance document management system"),
    _mapping("exact", "ConarciFetch", "Conarc", "Industry / LOB", "Desktop", "Insurance data integration tool"),
    _mapping("exact", "Dragon", "Dragon NaturallySpeaking", "Office Productivity", "Desktop", "Speech recognition software"),
    _mapping("startswith", "Barracuda", "Barracuda", "Security", "Both", "Email security and archiving"),
    _mapping("exact", "Dropbox", "Dropbox", "Cloud Storage", "Both", "Cloud file storage and sync"),
    _mapping("exact", "Microsoft OneDrive", "Microsoft OneDrive", "Cloud Storage", "Both", "Microsoft cloud file storage and sync"),
    _mapping("exact", "Splashtop Streamer", "Splashtop", "Remote Access", "Both", "Remote desktop access software"),
    _mapping("exact", "StreetSmart Edge®", "StreetSmart Edge", "Industry / LOB", "Desktop", "Charles Schwab trading platform"),
    _mapping("exact", "thinkorswim", "thinkorswim", "Industry / LOB", "Desktop", "TD Ameritrade trading platform"),
]
