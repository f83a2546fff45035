"""
Seed product catalog.
Vendor operator ids start unresolved; catalog synchronization fills them in.
Prices are vendor cost in NGN for fixed-denomination plans.
"""

AIRTIME_NETWORKS = [
    ('MTN', 'MTN Airtime'),
    ('GLO', 'GLO Airtime'),
    ('AIRTEL', 'Airtel Airtime'),
    ('9MOBILE', '9mobile Airtime'),
]

# (planId, network, name, price, validity)
DATA_PLANS = [
    ('MTN-1GB-DAILY', 'MTN', 'MTN 1GB Daily', 500, '1 day'),
    ('MTN-1GB-WEEKLY', 'MTN', 'MTN 1GB Weekly', 800, '7 days'),
    ('MTN-2GB-MONTHLY', 'MTN', 'MTN 2GB Monthly', 1500, '30 days'),
    ('MTN-6GB-WEEKLY', 'MTN', 'MTN 6GB Weekly', 2500, '7 days'),
    ('MTN-7GB-MONTHLY', 'MTN', 'MTN 7GB Monthly', 3500, '30 days'),
    ('MTN-100GB-MONTHLY', 'MTN', 'MTN 100GB Monthly', 20000, '30 days'),
    ('AIRTEL-1GB-DAILY', 'AIRTEL', 'Airtel 1GB Daily', 300, '1 day'),
    ('AIRTEL-1GB-WEEKLY', 'AIRTEL', 'Airtel 1GB Weekly', 800, '7 days'),
    ('AIRTEL-2GB-MONTHLY', 'AIRTEL', 'Airtel 2GB Monthly', 1500, '30 days'),
    ('AIRTEL-3.5GB-WEEKLY', 'AIRTEL', 'Airtel 3.5GB Weekly', 1500, '7 days'),
    ('AIRTEL-8GB-MONTHLY', 'AIRTEL', 'Airtel 8GB Monthly', 3000, '30 days'),
    ('AIRTEL-60GB-MONTHLY', 'AIRTEL', 'Airtel 60GB Monthly', 15000, '30 days'),
    ('AIRTEL-100GB-MONTHLY', 'AIRTEL', 'Airtel 100GB Monthly', 20000, '30 days'),
    ('GLO-1GB-DAILY', 'GLO', 'GLO 1GB Daily', 350, '1 day'),
    ('GLO-2GB-DAILY', 'GLO', 'GLO 2GB Daily', 500, '1 day'),
    ('GLO-7GB-WEEKLY', 'GLO', 'GLO 7GB Weekly', 1500, '7 days'),
    ('GLO-2.6GB-MONTHLY', 'GLO', 'GLO 2.6GB Monthly', 1000, '30 days'),
    ('GLO-10GB-MONTHLY', 'GLO', 'GLO 10GB Monthly', 2500, '30 days'),
    ('GLO-50GB-MONTHLY', 'GLO', 'GLO 50GB Monthly', 10000, '30 days'),
    ('GLO-107GB-MONTHLY', 'GLO', 'GLO 107GB Monthly', 20000, '30 days'),
    ('9MOBILE-1GB-DAILY', '9MOBILE', '9mobile 1GB Daily', 300, '1 day'),
    ('9MOBILE-7GB-WEEKLY', '9MOBILE', '9mobile 7GB Weekly', 1500, '7 days'),
    ('9MOBILE-2GB-MONTHLY', '9MOBILE', '9mobile 2GB Monthly', 1000, '30 days'),
    ('9MOBILE-4.5GB-MONTHLY', '9MOBILE', '9mobile 4.5GB Monthly', 2000, '30 days'),
    ('9MOBILE-11GB-MONTHLY', '9MOBILE', '9mobile 11GB Monthly', 4000, '30 days'),
]

# (planId, provider, name, price)
CABLE_TV_PACKAGES = [
    ('DSTV-PADI', 'DStv', 'DStv Padi', 3600),
    ('DSTV-YANGA', 'DStv', 'DStv Yanga', 5100),
    ('DSTV-CONFAM', 'DStv', 'DStv Confam', 9300),
    ('DSTV-COMPACT', 'DStv', 'DStv Compact', 15700),
    ('DSTV-COMPACT-PLUS', 'DStv', 'DStv Compact Plus', 25000),
    ('DSTV-PREMIUM', 'DStv', 'DStv Premium', 37000),
    ('GOTV-SMALLIE', 'GOtv', 'GOtv Smallie', 1200),
    ('GOTV-JINJA', 'GOtv', 'GOtv Jinja', 3300),
    ('GOTV-JOLLI', 'GOtv', 'GOtv Jolli', 4850),
    ('GOTV-MAX', 'GOtv', 'GOtv Max', 7200),
    ('GOTV-SUPA', 'GOtv', 'GOtv Supa', 9600),
    ('GOTV-SUPA-PLUS', 'GOtv', 'GOtv Supa+', 15700),
    ('STARTIMES-NOVA', 'StarTimes', 'StarTimes Nova', 1500),
    ('STARTIMES-BASIC', 'StarTimes', 'StarTimes Basic', 2500),
    ('STARTIMES-SMART', 'StarTimes', 'StarTimes Smart', 3500),
    ('STARTIMES-CLASSIC', 'StarTimes', 'StarTimes Classic', 5500),
    ('STARTIMES-SUPER', 'StarTimes', 'StarTimes Super', 8000),
]

# (disco, discoName); each disco is sold as prepaid and postpaid
ELECTRICITY_DISCOS = [
    ('AEDC', 'Abuja Electricity Distribution Company'),
    ('EKEDC', 'Eko Electricity Distribution Company'),
    ('IKEDC', 'Ikeja Electric'),
    ('IBEDC', 'Ibadan Electricity Distribution Company'),
    ('EEDC', 'Enugu Electricity Distribution Company'),
    ('PHED', 'Port Harcourt Electricity Distribution Company'),
    ('JED', 'Jos Electricity Distribution Company'),
    ('KAEDCO', 'Kaduna Electric'),
    ('KEDCO', 'Kano Electricity Distribution Company'),
    ('BEDC', 'Benin Electricity Distribution Company'),
    ('YEDC', 'Yola Electricity Distribution Company'),
]

ELECTRICITY_SERVICE_TYPES = ('prepaid', 'postpaid')


def default_catalog_entries():
    """Seed entries as plain dicts, in catalog order."""
    entries = []

    for network, name in AIRTIME_NETWORKS:
        entries.append({
            'service': 'airtime',
            'network': network,
            'name': name,
        })

    for plan_id, network, name, price, validity in DATA_PLANS:
        entries.append({
            'service': 'data',
            'planId': plan_id,
            'network': network,
            'name': name,
            'price': price,
            'validity': validity,
        })

    for plan_id, provider, name, price in CABLE_TV_PACKAGES:
        entries.append({
            'service': 'cableTV',
            'planId': plan_id,
            'provider': provider,
            'name': name,
            'price': price,
        })

    for disco, disco_name in ELECTRICITY_DISCOS:
        for service_type in ELECTRICITY_SERVICE_TYPES:
            entries.append({
                'service': 'electricity',
                'planId': f'{disco}-{service_type.upper()}',
                'disco': disco,
                'discoName': disco_name,
                'name': f'{disco} {service_type.capitalize()}',
                'serviceType': service_type,
            })

    return entries
